"""Adapter for the item-based Responses API.

Requests carry an ordered ``input`` item list (message, function_call,
function_call_output) plus a separate ``instructions`` string, rather than
the flat Chat Completions ``messages`` array. Responses always stream;
events are distinguished by a ``type`` string.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Mapping
from typing import Any

from kode_llm.adapters.base import ModelAPIAdapter
from kode_llm.errors import AbortError
from kode_llm.models import (
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

ENCRYPTED_REASONING_INCLUDE = "reasoning.encrypted_content"
DEFAULT_REASONING_EFFORT = "medium"
DEFAULT_VERBOSITY = "high"

_TEXT_PART_TYPES = ("output_text", "text")
_USAGE_EVENT_TYPES = ("response.completed", "response.incomplete")


class ResponsesAPIAdapter(ModelAPIAdapter):
    """Adapter for ``POST /responses``.

    Tool descriptors are flat (no nested ``function`` object) and tool
    calls are only surfaced once their output item is complete.
    """

    endpoint_path = "/responses"

    # -----------------------------------------------------------------
    # Request mapping
    # -----------------------------------------------------------------

    def create_request(self, params: UnifiedRequestParams) -> dict[str, Any]:
        """Build the Responses API payload.

        Reasoning needs two coupled fields: ``reasoning.effort`` and the
        ``reasoning.encrypted_content`` include entry. Without the include
        entry the request validates but reasoning is silently dropped, so
        both are emitted together or not at all.

        Args:
            params: Provider-neutral request parameters.

        Returns:
            A JSON-serializable dict ready to POST.
        """
        request: dict[str, Any] = {
            "model": self.profile.model_name,
            "input": self._map_input(params.messages),
            "instructions": self._build_instructions(params.system_prompt),
            "max_output_tokens": params.max_tokens,
            "stream": True,
        }

        if self.resolve_temperature(params.temperature) == 1.0:
            request["temperature"] = 1

        if self.should_include_reasoning_effort():
            effort = (
                params.reasoning_effort
                or self.profile.reasoning_effort
                or DEFAULT_REASONING_EFFORT
            )
            request["reasoning"] = {"effort": getattr(effort, "value", effort)}
            request["include"] = [ENCRYPTED_REASONING_INCLUDE]

        if self.should_include_verbosity():
            request["text"] = {"verbosity": params.verbosity or DEFAULT_VERBOSITY}

        tools = self.select_tools(params)
        if tools:
            request["tools"] = self.build_tools(tools)

        request["tool_choice"] = "auto"
        request["parallel_tool_calls"] = self.capabilities.supports_parallel_tool_calls
        request["store"] = False

        previous_id = params.previous_response_id or self.profile.previous_response_id
        if previous_id and self.capabilities.supports_stateful_continuation:
            request["previous_response_id"] = previous_id

        return request

    def build_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        mapped = []
        for t in tools:
            description = t.description or f"Tool: {t.name}"
            if t.freeform and self.capabilities.supports_freeform_tools:
                mapped.append(
                    {"type": "custom", "name": t.name, "description": description}
                )
                continue
            mapped.append(
                {
                    "type": "function",
                    "name": t.name,
                    "description": description,
                    "parameters": t.to_json_schema(),
                }
            )
        return mapped

    @staticmethod
    def _build_instructions(system_prompt: list[str]) -> str:
        return "\n\n".join(p for p in system_prompt if p.strip())

    def _map_input(self, messages: list[Message]) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        for msg in messages:
            items.extend(self._map_message(msg))
        return items

    def _map_message(self, msg: Message) -> list[dict[str, Any]]:
        if msg.role == Role.TOOL:
            results = msg.tool_results()
            call_id = results[0].tool_call_id if results else ""
            if not call_id:
                logger.debug("Skipping tool result without a call id")
                return []
            return [
                {
                    "type": "function_call_output",
                    "call_id": call_id,
                    "output": "\n".join(r.content for r in results),
                }
            ]

        items: list[dict[str, Any]] = []
        is_assistant = msg.role == Role.ASSISTANT
        text_type = "output_text" if is_assistant else "input_text"

        parts: list[dict[str, Any]] = []
        for part in msg.content:
            if isinstance(part, TextContent) and part.text:
                parts.append({"type": text_type, "text": part.text})
            elif isinstance(part, ImageContent) and not is_assistant:
                parts.append({"type": "input_image", "image_url": part.to_url()})
        if parts:
            items.append(
                {
                    "type": "message",
                    "role": "assistant" if is_assistant else "user",
                    "content": parts,
                }
            )

        if is_assistant:
            for tc in msg.tool_calls():
                if not tc.tool_call_id or not tc.tool_name:
                    continue
                items.append(
                    {
                        "type": "function_call",
                        "call_id": tc.tool_call_id,
                        "name": tc.tool_name,
                        "arguments": tc.arguments_json or "{}",
                    }
                )
        return items

    # -----------------------------------------------------------------
    # Response mapping
    # -----------------------------------------------------------------

    def parse_buffered_response(self, raw: Mapping[str, Any]) -> UnifiedResponse:
        output = raw.get("output")
        if not isinstance(output, list):
            output = []
        output = [item for item in output if isinstance(item, Mapping)]

        text = raw.get("output_text") or ""
        messages = [item for item in output if item.get("type") == "message"]
        if messages:
            text = "\n\n".join(
                t for t in (self._message_text(item) for item in messages) if t
            )

        usage = normalize_usage(_mapping(raw.get("usage")))
        if usage.total_tokens is None:
            usage.total_tokens = usage.input_tokens + usage.output_tokens

        return UnifiedResponse(
            id=raw.get("id") or f"resp_{int(time.time() * 1000)}",
            content=[TextContent(text=text)],
            tool_calls=self._parse_tool_calls(output),
            usage=usage,
            response_id=raw.get("id"),
        )

    @staticmethod
    def _message_text(item: Mapping[str, Any]) -> str:
        content = item.get("content")
        if isinstance(content, str):
            return content
        if not isinstance(content, list):
            return ""
        texts = []
        for part in content:
            if not isinstance(part, Mapping) or part.get("type") not in _TEXT_PART_TYPES:
                continue
            if isinstance(part.get("text"), str):
                texts.append(part["text"])
        return "\n".join(texts)

    @staticmethod
    def _parse_tool_calls(output: list[Mapping[str, Any]]) -> list[ToolCall]:
        calls = []
        for item in output:
            if item.get("type") != "function_call":
                continue
            request = _tool_request_from_item(item)
            if request is not None:
                calls.append(
                    ToolCall(id=request.id, name=request.name, arguments=request.input)
                )
        return calls

    async def parse_streaming_response(
        self, raw: Any, cancel: asyncio.Event | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Yield StreamEvents from a streamed Responses API body.

        Args:
            raw: A live response exposing ``aiter_bytes()``.
            cancel: Optional abort signal forwarded to the SSE decoder.

        Yields:
            ``message_start``, ``text_delta``, ``tool_request``, one
            ``usage``, optionally ``error``, and finally ``message_stop``.

        Raises:
            AbortError: If ``cancel`` is set mid-stream.
        """
        self._require_stream(raw)
        response_id = f"resp_{int(time.time() * 1000)}"
        started = False
        usage_seen = False
        text = ""

        try:
            async for event in iter_sse_events(raw, cancel):
                event_type = event.get("type", "")
                response = _mapping(event.get("response"))

                if event_type == "response.created":
                    if isinstance(response.get("id"), str) and response["id"]:
                        response_id = response["id"]

                elif event_type == "response.output_text.delta":
                    delta = event.get("delta")
                    if isinstance(delta, str) and delta:
                        if not started:
                            started = True
                            yield StreamEvent.message_start(response_id)
                        text += delta
                        yield StreamEvent(
                            type=StreamEventType.TEXT_DELTA,
                            delta=delta,
                            response_id=response_id,
                        )

                elif event_type == "response.output_item.done":
                    item = event.get("item")
                    if not isinstance(item, Mapping):
                        logger.debug("Skipping malformed output item: %r", item)
                    elif item.get("type") == "function_call":
                        request = _tool_request_from_item(item)
                        if request is not None:
                            yield StreamEvent(
                                type=StreamEventType.TOOL_REQUEST, tool=request
                            )

                elif event_type in ("response.failed", "error"):
                    yield StreamEvent(
                        type=StreamEventType.ERROR,
                        error=_failure_message(event, response),
                    )

                usage = _mapping(event.get("usage"))
                if not usage and event_type in _USAGE_EVENT_TYPES:
                    usage = _mapping(response.get("usage"))
                if usage and not usage_seen:
                    usage_seen = True
                    yield StreamEvent(
                        type=StreamEventType.USAGE, usage=normalize_usage(usage)
                    )
        except AbortError:
            raise
        except Exception as exc:
            logger.error("Error reading streaming response: %s", exc)
            yield StreamEvent(type=StreamEventType.ERROR, error=str(exc))

        yield StreamEvent.message_stop(text, response_id)


def _tool_request_from_item(item: Mapping[str, Any]) -> ToolRequest | None:
    """Validate a function_call item; None if any field is malformed."""
    call_id = item.get("call_id") or item.get("id")
    name = item.get("name")
    arguments = item.get("arguments")
    if not (
        isinstance(call_id, str)
        and isinstance(name, str)
        and isinstance(arguments, str)
        and call_id
        and name
    ):
        logger.debug("Dropping malformed function_call item: %r", item)
        return None
    return ToolRequest(id=call_id, name=name, input=arguments)


def _failure_message(event: Mapping[str, Any], response: Mapping[str, Any]) -> str:
    error = response.get("error") or event.get("error") or event.get("message")
    if isinstance(error, Mapping):
        error = error.get("message")
    return str(error or "Response generation failed")


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}
