"""Tests for the kode-llm CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from kode_llm.cli import main


@pytest.fixture(autouse=True)
def _no_env_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_BASE_URL", raising=False)


def _write_params(tmp_path: Path, data: dict) -> str:
    path = tmp_path / "params.json"
    path.write_text(json.dumps(data))
    return str(path)


class TestRequestCommand:
    def test_responses_payload_for_gpt5(self, tmp_path: Path) -> None:
        params = _write_params(
            tmp_path,
            {
                "system_prompt": "Be brief.",
                "messages": [{"role": "user", "content": "hi"}],
                "max_tokens": 128,
            },
        )
        result = CliRunner().invoke(main, ["request", params, "--model", "gpt-5"])
        assert result.exit_code == 0, result.output
        assert '"max_output_tokens": 128' in result.output
        assert '"instructions": "Be brief."' in result.output
        assert "reasoning.encrypted_content" in result.output

    def test_chat_payload_override(self, tmp_path: Path) -> None:
        params = _write_params(
            tmp_path,
            {
                "messages": [{"role": "user", "content": "hi"}],
                "tools": [{"name": "ls", "description": "List files"}],
            },
        )
        result = CliRunner().invoke(
            main, ["request", params, "--model", "gpt-4o", "--api", "chat"]
        )
        assert result.exit_code == 0, result.output
        assert '"max_completion_tokens": 4096' in result.output
        assert '"tool_choice": "auto"' in result.output

    def test_gpt5_over_chat_uses_chat_token_field(self, tmp_path: Path) -> None:
        params = _write_params(
            tmp_path, {"messages": [{"role": "user", "content": "hi"}], "max_tokens": 64}
        )
        result = CliRunner().invoke(
            main, ["request", params, "--model", "gpt-5", "--api", "chat"]
        )
        assert result.exit_code == 0, result.output
        assert '"max_completion_tokens": 64' in result.output
        assert "max_output_tokens" not in result.output

    def test_invalid_params_file(self, tmp_path: Path) -> None:
        params = _write_params(tmp_path, {"max_tokens": 0})
        result = CliRunner().invoke(main, ["request", params, "--model", "gpt-4o"])
        assert result.exit_code == 1
        assert "Invalid request file" in result.output


class TestReplayCommand:
    def test_replay_chat_capture(self, tmp_path: Path) -> None:
        chunks = [
            {"id": "chatcmpl-1", "choices": [{"delta": {"content": "Hello"}}]},
            {
                "id": "chatcmpl-1",
                "choices": [{"delta": {}, "finish_reason": "stop"}],
                "usage": {"prompt_tokens": 3, "completion_tokens": 1},
            },
        ]
        capture = tmp_path / "capture.sse"
        capture.write_text(
            "".join(f"data: {json.dumps(c)}\n\n" for c in chunks) + "data: [DONE]\n\n"
        )
        result = CliRunner().invoke(
            main, ["replay", str(capture), "--model", "gpt-4o"]
        )
        assert result.exit_code == 0, result.output
        assert "text_delta" in result.output
        assert "message_stop" in result.output
        assert "Hello" in result.output
        assert "total=4" in result.output

    def test_replay_responses_tool_call(self, tmp_path: Path) -> None:
        event = {
            "type": "response.output_item.done",
            "item": {
                "type": "function_call",
                "call_id": "call_1",
                "name": "read_file",
                "arguments": "{}",
            },
        }
        capture = tmp_path / "capture.sse"
        capture.write_text(f"data: {json.dumps(event)}\n\ndata: [DONE]\n\n")
        result = CliRunner().invoke(main, ["replay", str(capture), "--model", "gpt-5"])
        assert result.exit_code == 0, result.output
        assert "Tool call:" in result.output
        assert "read_file" in result.output
