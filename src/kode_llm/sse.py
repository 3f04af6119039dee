"""Server-Sent-Events decoding for streaming completions.

Both protocols stream ``data: <json>`` lines terminated by a ``[DONE]``
sentinel. :class:`SSEDecoder` turns raw byte chunks into JSON event dicts
without reading past the chunks it has been given; :func:`iter_sse_events`
drives one over a live response body.
"""

from __future__ import annotations

import asyncio
import codecs
import json
import logging
from collections.abc import AsyncIterator
from typing import Any

from kode_llm.errors import AbortError

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


def parse_sse_line(line: str) -> dict[str, Any] | None:
    """Parse one SSE line into a JSON object.

    Returns None for blank lines, comments, non-``data`` fields, the
    ``[DONE]`` sentinel, and malformed payloads. Malformed JSON is logged
    and skipped.
    """
    line = line.strip()
    if not line.startswith("data:"):
        return None
    data = line[5:].strip()
    if not data or data == DONE_SENTINEL:
        return None
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        logger.warning("Skipping malformed SSE chunk: %s", exc)
        return None
    if not isinstance(parsed, dict):
        logger.debug("Skipping non-object SSE payload: %r", parsed)
        return None
    return parsed


class SSEDecoder:
    """Incremental SSE decoder with one rolling line buffer.

    Not shared between streams: create one per response.
    """

    def __init__(self) -> None:
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: bytes) -> list[dict[str, Any]]:
        """Decode a chunk and return the events of every completed line.

        The trailing partial line is held back until a later chunk (or
        :meth:`flush`) completes it.
        """
        self._buffer += self._decoder.decode(chunk)
        *lines, self._buffer = self._buffer.split("\n")
        return self._parse_lines(lines)

    def flush(self) -> list[dict[str, Any]]:
        """Parse whatever remains once the stream has ended."""
        self._buffer += self._decoder.decode(b"", final=True)
        remainder, self._buffer = self._buffer, ""
        return self._parse_lines([remainder])

    @staticmethod
    def _parse_lines(lines: list[str]) -> list[dict[str, Any]]:
        events = []
        for line in lines:
            parsed = parse_sse_line(line)
            if parsed is not None:
                events.append(parsed)
        return events


async def _read_chunk(chunks: AsyncIterator[bytes]) -> bytes | None:
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


async def _next_chunk(
    chunks: AsyncIterator[bytes], cancel: asyncio.Event | None
) -> bytes | None:
    """Wait for the next chunk, or raise AbortError once *cancel* is set.

    Returns None when the body is exhausted.
    """
    if cancel is None:
        return await _read_chunk(chunks)
    if cancel.is_set():
        raise AbortError("Stream cancelled")

    reader = asyncio.ensure_future(_read_chunk(chunks))
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        await asyncio.wait({reader, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        waiter.cancel()
        if not reader.done():
            reader.cancel()
            # The body iterator must be idle before it can be closed.
            await asyncio.wait({reader})
    if reader.cancelled():
        raise AbortError("Stream cancelled")
    return reader.result()


async def iter_sse_events(
    response: Any, cancel: asyncio.Event | None = None
) -> AsyncIterator[dict[str, Any]]:
    """Yield JSON events from a response exposing ``aiter_bytes()``.

    Args:
        response: A live response, e.g. an ``httpx.Response`` opened with
            ``client.stream(...)``.
        cancel: Optional abort signal. It is raced against every wait for
            the next chunk and checked again before each event.

    Yields:
        One dict per well-formed ``data:`` line, in arrival order.

    Raises:
        AbortError: If ``cancel`` is set while the stream is being read,
            including while it is stalled waiting for bytes.
    """
    decoder = SSEDecoder()
    chunks = response.aiter_bytes()
    try:
        while True:
            chunk = await _next_chunk(chunks, cancel)
            events = decoder.flush() if chunk is None else decoder.feed(chunk)
            for event in events:
                if cancel is not None and cancel.is_set():
                    raise AbortError("Stream cancelled")
                yield event
            if chunk is None:
                break
    finally:
        aclose = getattr(chunks, "aclose", None)
        if aclose is not None:
            await aclose()
