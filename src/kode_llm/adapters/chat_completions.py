"""Adapter for the flat-message Chat Completions protocol."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from typing import Any

from kode_llm.adapters.base import ModelAPIAdapter
from kode_llm.errors import AbortError
from kode_llm.models import (
    ContentPart,
    ImageContent,
    Message,
    Role,
    StreamEvent,
    StreamEventType,
    TextContent,
    ToolCall,
    ToolDefinition,
    ToolRequest,
    UnifiedRequestParams,
    UnifiedResponse,
)
from kode_llm.sse import iter_sse_events
from kode_llm.usage import normalize_usage

logger = logging.getLogger(__name__)

# Model families that reject temperature and streaming parameters.
_NO_SAMPLING_PREFIXES = ("o1",)


@dataclass
class _ToolCallFragment:
    id: str = ""
    name: str = ""
    arguments: str = ""


class ChatCompletionsAdapter(ModelAPIAdapter):
    """Adapter for ``POST /chat/completions``.

    Requests are one flat ``messages`` list; tools use the nested
    ``{"type": "function", "function": {...}}`` descriptor.
    """

    endpoint_path = "/chat/completions"

    # -----------------------------------------------------------------
    # Request mapping
    # -----------------------------------------------------------------

    def create_request(self, params: UnifiedRequestParams) -> dict[str, Any]:
        """Build the Chat Completions payload.

        Args:
            params: Provider-neutral request parameters.

        Returns:
            A JSON-serializable dict ready to POST.
        """
        model = self.profile.model_name
        request: dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(params.system_prompt, params.messages),
            self.max_tokens_field(): params.max_tokens,
            "temperature": self.resolve_temperature(params.temperature),
        }

        tools = self.select_tools(params)
        if tools:
            request["tools"] = self.build_tools(tools)
            request["tool_choice"] = "auto"

        if self.should_include_reasoning_effort() and params.reasoning_effort:
            request["reasoning_effort"] = _value(params.reasoning_effort)

        if self.should_include_verbosity() and params.verbosity:
            request["verbosity"] = params.verbosity

        if params.stream:
            request["stream"] = True
            request["stream_options"] = {"include_usage": True}

        if model.startswith(_NO_SAMPLING_PREFIXES):
            request.pop("temperature", None)
            request.pop("stream", None)
            request.pop("stream_options", None)

        return request

    def build_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description or "",
                    "parameters": t.to_json_schema(),
                },
            }
            for t in tools
        ]

    def _build_messages(
        self, system_prompt: list[str], messages: list[Message]
    ) -> list[dict[str, Any]]:
        wire = [
            {"role": "system", "content": prompt}
            for prompt in system_prompt
            if prompt.strip()
        ]
        wire.extend(self._map_message(msg) for msg in messages)
        return wire

    def _map_message(self, msg: Message) -> dict[str, Any]:
        if msg.role == Role.TOOL:
            results = msg.tool_results()
            return {
                "role": "tool",
                "tool_call_id": results[0].tool_call_id if results else "",
                "content": "\n".join(r.content for r in results),
            }

        if msg.role == Role.ASSISTANT:
            calls = msg.tool_calls()
            text = msg.text()
            if not calls:
                return {"role": "assistant", "content": text}
            return {
                "role": "assistant",
                "content": text or None,
                "tool_calls": [
                    {
                        "id": tc.tool_call_id,
                        "type": "function",
                        "function": {
                            "name": tc.tool_name,
                            "arguments": tc.arguments_json or json.dumps(tc.arguments),
                        },
                    }
                    for tc in calls
                ],
            }

        return {"role": msg.role.value, "content": self._map_content_parts(msg.content)}

    @staticmethod
    def _map_content_parts(parts: list[ContentPart]) -> str | list[dict[str, Any]]:
        if all(isinstance(p, TextContent) for p in parts):
            return "".join(p.text for p in parts)  # type: ignore[union-attr]

        mapped: list[dict[str, Any]] = []
        for part in parts:
            if isinstance(part, TextContent):
                mapped.append({"type": "text", "text": part.text})
            elif isinstance(part, ImageContent):
                mapped.append({"type": "image_url", "image_url": {"url": part.to_url()}})
        return mapped

    # -----------------------------------------------------------------
    # Response mapping
    # -----------------------------------------------------------------

    def parse_buffered_response(self, raw: Mapping[str, Any]) -> UnifiedResponse:
        choices = raw.get("choices")
        first = choices[0] if isinstance(choices, list) and choices else None
        choice = _mapping(first)
        message = _mapping(choice.get("message"))

        tool_calls = []
        raw_calls = message.get("tool_calls")
        for tc in raw_calls if isinstance(raw_calls, list) else []:
            if not isinstance(tc, Mapping):
                logger.debug("Dropping malformed tool call: %r", tc)
                continue
            fn = _mapping(tc.get("function"))
            call_id, name = tc.get("id"), fn.get("name")
            if not isinstance(call_id, str) or not isinstance(name, str):
                logger.debug("Dropping malformed tool call: %r", tc)
                continue
            arguments = fn.get("arguments")
            if not isinstance(arguments, str) or not arguments:
                arguments = "{}"
            tool_calls.append(ToolCall(id=call_id, name=name, arguments=arguments))

        usage = normalize_usage(_mapping(raw.get("usage")))
        if usage.total_tokens is None:
            usage.total_tokens = usage.input_tokens + usage.output_tokens

        content = message.get("content")
        return UnifiedResponse(
            id=raw.get("id") or f"chatcmpl_{int(time.time() * 1000)}",
            content=[TextContent(text=content if isinstance(content, str) else "")],
            tool_calls=tool_calls,
            usage=usage,
        )

    async def parse_streaming_response(
        self, raw: Any, cancel: asyncio.Event | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Yield StreamEvents from a streamed Chat Completions body.

        Text and reasoning deltas share one text channel. Tool-call fragments
        are accumulated by index and surface as a single ``tool_request``
        once the choice finishes (or the stream ends) with a complete call.

        Yields:
            ``message_start``, ``text_delta``, ``tool_request``, ``usage``,
            optionally ``error``, and finally ``message_stop``.
        """
        self._require_stream(raw)
        response_id = getattr(raw, "id", None) or f"chatcmpl_{int(time.time() * 1000)}"
        started = False
        text = ""
        fragments: dict[int, _ToolCallFragment] = {}

        try:
            async for chunk in iter_sse_events(raw, cancel):
                if isinstance(chunk.get("id"), str) and chunk["id"]:
                    response_id = chunk["id"]

                if chunk.get("error"):
                    yield StreamEvent(
                        type=StreamEventType.ERROR, error=_error_text(chunk["error"])
                    )
                    continue

                choices = chunk.get("choices")
                first = choices[0] if isinstance(choices, list) and choices else None
                choice = _mapping(first)
                delta = _mapping(choice.get("delta"))

                piece = "".join(
                    value
                    for value in (
                        delta.get("content"),
                        delta.get("reasoning_content"),
                        delta.get("reasoning"),
                    )
                    if isinstance(value, str)
                )
                if piece:
                    if not started:
                        started = True
                        yield StreamEvent.message_start(response_id)
                    text += piece
                    yield StreamEvent(
                        type=StreamEventType.TEXT_DELTA,
                        delta=piece,
                        response_id=response_id,
                    )

                tool_calls = delta.get("tool_calls")
                for tc in tool_calls if isinstance(tool_calls, list) else []:
                    if not isinstance(tc, Mapping):
                        logger.debug("Skipping malformed tool call fragment: %r", tc)
                        continue
                    index = tc.get("index")
                    if not isinstance(index, int):
                        index = 0
                    frag = fragments.setdefault(index, _ToolCallFragment())
                    fn = _mapping(tc.get("function"))
                    if isinstance(tc.get("id"), str) and tc["id"]:
                        frag.id = tc["id"]
                    if isinstance(fn.get("name"), str) and fn["name"]:
                        frag.name = fn["name"]
                    if isinstance(fn.get("arguments"), str):
                        frag.arguments += fn["arguments"]

                if choice.get("finish_reason") and fragments:
                    for request in _complete_tool_requests(fragments):
                        yield StreamEvent(type=StreamEventType.TOOL_REQUEST, tool=request)
                    fragments.clear()

                if isinstance(chunk.get("usage"), Mapping) and chunk["usage"]:
                    yield StreamEvent(
                        type=StreamEventType.USAGE,
                        usage=normalize_usage(chunk["usage"]),
                    )

            for request in _complete_tool_requests(fragments):
                yield StreamEvent(type=StreamEventType.TOOL_REQUEST, tool=request)
        except AbortError:
            raise
        except Exception as exc:
            logger.error("Error reading streaming response: %s", exc)
            yield StreamEvent(type=StreamEventType.ERROR, error=str(exc))

        yield StreamEvent.message_stop(text, response_id)


def _complete_tool_requests(
    fragments: dict[int, _ToolCallFragment],
) -> list[ToolRequest]:
    """Return the structurally complete calls, in index order."""
    requests = []
    for index in sorted(fragments):
        frag = fragments[index]
        arguments = frag.arguments or "{}"
        if not frag.id or not frag.name:
            logger.warning("Dropping incomplete tool call at index %d", index)
            continue
        try:
            json.loads(arguments)
        except json.JSONDecodeError:
            logger.warning(
                "Dropping tool call %s with incomplete arguments", frag.id
            )
            continue
        requests.append(ToolRequest(id=frag.id, name=frag.name, input=arguments))
    return requests


def _error_text(error: Any) -> str:
    if isinstance(error, Mapping):
        return str(error.get("message") or error)
    return str(error)


def _value(effort: Any) -> str:
    return getattr(effort, "value", effort)


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}
