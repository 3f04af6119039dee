"""Stream-to-message reduction.

Provides StreamCollector to fold a StreamEvent sequence into one complete
UnifiedResponse, for callers that want a single value instead of events.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from kode_llm.models import (
    ContentPart,
    StreamEvent,
    StreamEventType,
    TextContent,
    ToolCall,
    ToolCallContent,
    ToolRequest,
    TokenUsage,
    UnifiedResponse,
)

logger = logging.getLogger(__name__)


def _parse_arguments(raw: str) -> dict[str, Any]:
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.warning("Failed to parse tool call arguments: %s", exc)
        return {}
    return parsed if isinstance(parsed, dict) else {}


@dataclass
class StreamCollector:
    """Accumulates StreamEvents into a complete UnifiedResponse.

    Feed events via ``process_event()`` or drain an entire async stream
    with ``collect()``. ``to_response()`` can be called at any point and
    returns what has been assembled so far.
    """

    blocks: list[ContentPart] = field(default_factory=list)
    pending_tools: list[ToolRequest] = field(default_factory=list)
    usage: TokenUsage | None = None
    response_id: str | None = None
    stopped: bool = False
    errors: list[str] = field(default_factory=list)

    def process_event(self, event: StreamEvent) -> None:
        """Process a single stream event."""
        if event.response_id:
            self.response_id = event.response_id

        if event.type == StreamEventType.TEXT_DELTA:
            last = self.blocks[-1] if self.blocks else None
            if isinstance(last, TextContent):
                last.text += event.delta
            else:
                self.blocks.append(TextContent(text=event.delta))

        elif event.type == StreamEventType.TOOL_REQUEST:
            if event.tool is not None:
                self.pending_tools.append(event.tool)

        elif event.type == StreamEventType.USAGE:
            # Usage is cumulative; the latest report replaces earlier ones.
            if event.usage is not None:
                self.usage = event.usage

        elif event.type == StreamEventType.ERROR:
            if event.error:
                self.errors.append(event.error)

        elif event.type == StreamEventType.MESSAGE_STOP:
            self.stopped = True

    def to_response(self) -> UnifiedResponse:
        """Assemble the accumulated events into a UnifiedResponse."""
        content: list[ContentPart] = [
            TextContent(text=b.text, citations=list(b.citations))
            if isinstance(b, TextContent)
            else b
            for b in self.blocks
        ]
        tool_calls: list[ToolCall] = []
        for tool in self.pending_tools:
            arguments = _parse_arguments(tool.input)
            content.append(
                ToolCallContent(
                    tool_call_id=tool.id,
                    tool_name=tool.name,
                    arguments=arguments,
                    arguments_json=tool.input or "{}",
                )
            )
            tool_calls.append(
                ToolCall(id=tool.id, name=tool.name, arguments=tool.input or "{}")
            )

        response_id = self.response_id or f"stream_{int(time.time() * 1000)}"
        return UnifiedResponse(
            id=response_id,
            content=content,
            tool_calls=tool_calls,
            usage=self.usage or TokenUsage(),
            response_id=self.response_id,
        )

    async def collect(self, stream: AsyncIterator[StreamEvent]) -> UnifiedResponse:
        """Drain *stream* and return the assembled response.

        A stream that raises, or ends without ``message_stop``, still yields
        the best-effort response built from the events received so far.
        """
        try:
            async for event in stream:
                self.process_event(event)
        except Exception as exc:
            logger.warning("Stream failed before completion: %s", exc)
            self.errors.append(str(exc))
        if not self.stopped:
            logger.debug("Stream ended without message_stop; returning partial message")
        return self.to_response()


async def collect_stream(stream: AsyncIterator[StreamEvent]) -> UnifiedResponse:
    """Reduce an event stream to one UnifiedResponse."""
    return await StreamCollector().collect(stream)
