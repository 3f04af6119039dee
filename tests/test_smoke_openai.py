"""Live smoke tests against the OpenAI endpoints.

Requires a real OPENAI_API_KEY.  Run with:

    pytest -m smoke tests/test_smoke_openai.py -v
"""

from __future__ import annotations

import pytest

from kode_llm.adapters import ChatCompletionsAdapter, ResponsesAPIAdapter
from kode_llm.catalog import get_capabilities
from kode_llm.models import (
    Message,
    ModelProfile,
    StreamEventType,
    ToolDefinition,
    UnifiedRequestParams,
)
from kode_llm.transport import HTTPTransport

SMOKE_MODEL = "gpt-5-mini"

pytestmark = pytest.mark.smoke

_WEATHER_TOOL = ToolDefinition(
    name="get_weather",
    description="Get the current weather for a city.",
    parameters={
        "type": "object",
        "properties": {"city": {"type": "string"}},
        "required": ["city"],
    },
)


class TestResponsesSmoke:
    @pytest.mark.asyncio
    async def test_streamed_text(self, requires_openai_key: None) -> None:  # noqa: ARG002
        profile = ModelProfile.from_env(SMOKE_MODEL)
        adapter = ResponsesAPIAdapter(get_capabilities(SMOKE_MODEL), profile)
        payload = adapter.create_request(
            UnifiedRequestParams(
                messages=[Message.user("Reply with exactly one word: hello.")],
                max_tokens=256,
            )
        )

        async with HTTPTransport(profile).stream(adapter.endpoint_path, payload) as raw:
            events = [e async for e in adapter.parse_streaming_response(raw)]

        types = [e.type for e in events]
        assert types[-1] == StreamEventType.MESSAGE_STOP
        assert StreamEventType.ERROR not in types
        assert StreamEventType.USAGE in types

    @pytest.mark.asyncio
    async def test_tool_call(self, requires_openai_key: None) -> None:  # noqa: ARG002
        profile = ModelProfile.from_env(SMOKE_MODEL)
        adapter = ResponsesAPIAdapter(get_capabilities(SMOKE_MODEL), profile)
        payload = adapter.create_request(
            UnifiedRequestParams(
                messages=[Message.user("What is the weather in Paris? Use the tool.")],
                tools=[_WEATHER_TOOL],
                max_tokens=512,
            )
        )

        async with HTTPTransport(profile).stream(adapter.endpoint_path, payload) as raw:
            response = await adapter.parse_response(raw)

        assert response.tool_calls, "Expected the model to call get_weather"
        assert response.tool_calls[0].name == "get_weather"


class TestChatCompletionsSmoke:
    @pytest.mark.asyncio
    async def test_buffered_text(self, requires_openai_key: None) -> None:  # noqa: ARG002
        model = "gpt-4o-mini"
        profile = ModelProfile.from_env(model)
        adapter = ChatCompletionsAdapter(get_capabilities(model), profile)
        payload = adapter.create_request(
            UnifiedRequestParams(messages=[Message.user("Say hi.")], max_tokens=32)
        )

        raw = await HTTPTransport(profile).post(adapter.endpoint_path, payload)
        response = await adapter.parse_response(raw)

        assert response.text()
        assert response.usage.total > 0
