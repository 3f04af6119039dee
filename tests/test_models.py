"""Tests for kode_llm.models."""

from __future__ import annotations

import pytest

from kode_llm.errors import ConfigurationError
from kode_llm.models import (
    ContentKind,
    ImageContent,
    Message,
    ModelProfile,
    ReasoningEffort,
    Role,
    StreamEvent,
    StreamEventType,
    TextContent,
    TokenUsage,
    ToolCallContent,
    ToolDefinition,
    ToolResultContent,
    UnifiedRequestParams,
    UnifiedResponse,
)

# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


class TestMessageFactories:
    def test_user_message(self) -> None:
        msg = Message.user("Hello")
        assert msg.role == Role.USER
        assert msg.text() == "Hello"

    def test_tool_result_message(self) -> None:
        msg = Message.tool_result("call_123", "result data", is_error=True)
        assert msg.role == Role.TOOL
        [part] = msg.tool_results()
        assert part.tool_call_id == "call_123"
        assert part.content == "result data"
        assert part.is_error is True


class TestMessageFromDict:
    def test_plain_string_content(self) -> None:
        msg = Message.from_dict({"role": "user", "content": "hi"})
        assert msg.role == Role.USER
        assert msg.content == [TextContent(text="hi")]

    def test_content_parts_with_image(self) -> None:
        msg = Message.from_dict(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": "look"},
                    {"type": "image_url", "image_url": {"url": "https://x/img.png"}},
                ],
            }
        )
        assert msg.text() == "look"
        images = [p for p in msg.content if isinstance(p, ImageContent)]
        assert images[0].url == "https://x/img.png"

    def test_assistant_tool_calls(self) -> None:
        msg = Message.from_dict(
            {
                "role": "assistant",
                "content": None,
                "tool_calls": [
                    {
                        "id": "call_1",
                        "type": "function",
                        "function": {"name": "ls", "arguments": '{"path": "."}'},
                    }
                ],
            }
        )
        [call] = msg.tool_calls()
        assert call.tool_call_id == "call_1"
        assert call.arguments == {"path": "."}

    def test_tool_message(self) -> None:
        msg = Message.from_dict(
            {"role": "tool", "tool_call_id": "call_9", "content": "done"}
        )
        assert msg.tool_results() == [
            ToolResultContent(tool_call_id="call_9", content="done")
        ]

    def test_unknown_role_raises(self) -> None:
        with pytest.raises(ValueError, match="Invalid message role"):
            Message.from_dict({"role": "narrator", "content": "x"})


# ---------------------------------------------------------------------------
# Content parts
# ---------------------------------------------------------------------------


class TestContentParts:
    def test_tool_call_syncs_arguments_from_json(self) -> None:
        tc = ToolCallContent(tool_call_id="c", tool_name="t", arguments_json='{"a": 1}')
        assert tc.kind == ContentKind.TOOL_USE
        assert tc.arguments == {"a": 1}

    def test_tool_call_syncs_json_from_arguments(self) -> None:
        tc = ToolCallContent(tool_call_id="c", tool_name="t", arguments={"a": 1})
        assert tc.arguments_json == '{"a": 1}'

    def test_tool_call_bad_json_keeps_empty_arguments(self) -> None:
        tc = ToolCallContent(tool_call_id="c", tool_name="t", arguments_json="{oops")
        assert tc.arguments == {}

    def test_image_requires_source(self) -> None:
        with pytest.raises(ValueError):
            ImageContent()

    def test_image_data_url(self) -> None:
        img = ImageContent(base64_data="AAAA", media_type="image/jpeg")
        assert img.to_url() == "data:image/jpeg;base64,AAAA"

    def test_tool_definition_schema_default(self) -> None:
        assert ToolDefinition(name="t").to_json_schema() == {
            "type": "object",
            "properties": {},
        }


# ---------------------------------------------------------------------------
# Request / response
# ---------------------------------------------------------------------------


class TestUnifiedRequestParams:
    def test_defaults(self) -> None:
        params = UnifiedRequestParams()
        assert params.stream is False
        assert params.allowed_tools is None

    @pytest.mark.parametrize("bad", [0, -5, 1.5, True])
    def test_max_tokens_must_be_positive_int(self, bad: object) -> None:
        with pytest.raises(ValueError):
            UnifiedRequestParams(max_tokens=bad)  # type: ignore[arg-type]

    def test_reasoning_effort_enum(self) -> None:
        params = UnifiedRequestParams(reasoning_effort=ReasoningEffort.HIGH)
        assert params.reasoning_effort == "high"


class TestUnifiedResponse:
    def test_empty_content_normalizes_to_empty_text_block(self) -> None:
        response = UnifiedResponse(id="r1", content=[])
        assert len(response.content) == 1
        assert response.content[0].kind == "text"
        assert response.content[0].text == ""

    def test_text_joins_text_blocks(self) -> None:
        response = UnifiedResponse(
            id="r1", content=[TextContent(text="a"), TextContent(text="b")]
        )
        assert response.text() == "ab"


class TestTokenUsage:
    def test_total_falls_back_to_sum(self) -> None:
        assert TokenUsage(input_tokens=3, output_tokens=4).total == 7

    def test_reported_total_wins(self) -> None:
        assert TokenUsage(input_tokens=3, output_tokens=4, total_tokens=10).total == 10


class TestStreamEventFactories:
    def test_message_start(self) -> None:
        event = StreamEvent.message_start("resp_1")
        assert event.type == StreamEventType.MESSAGE_START
        assert event.message is not None
        assert event.message.role == Role.ASSISTANT
        assert event.message.content == []

    def test_message_stop_carries_text_block(self) -> None:
        event = StreamEvent.message_stop("", "resp_1")
        assert event.message is not None
        assert event.message.content == [TextContent(text="")]


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


class TestModelProfileFromEnv:
    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        monkeypatch.setenv("OPENAI_BASE_URL", "https://proxy.local/v1")
        profile = ModelProfile.from_env("gpt-5")
        assert profile.api_key == "sk-env"
        assert profile.base_url == "https://proxy.local/v1"

    def test_default_base_url(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OPENAI_BASE_URL", raising=False)
        profile = ModelProfile.from_env("gpt-4o")
        assert profile.base_url == "https://api.openai.com/v1"

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
        profile = ModelProfile.from_env("gpt-5", api_key="sk-explicit")
        assert profile.api_key == "sk-explicit"

    def test_empty_model_name_rejected(self) -> None:
        with pytest.raises(ConfigurationError):
            ModelProfile.from_env("")

    def test_api_key_hidden_from_repr(self) -> None:
        profile = ModelProfile(model_name="gpt-5", api_key="sk-secret")
        assert "sk-secret" not in repr(profile)
