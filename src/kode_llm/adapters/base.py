"""Base class for model API adapters."""

from __future__ import annotations

import abc
import asyncio
from collections.abc import AsyncIterator, Mapping
from typing import Any

from kode_llm.errors import StreamError
from kode_llm.models import (
    ModelCapabilities,
    ModelProfile,
    StreamEvent,
    TemperatureMode,
    ToolDefinition,
    UnifiedRequestParams,
    UnifiedResponse,
)
from kode_llm.streaming import collect_stream

DEFAULT_TEMPERATURE = 0.7


def is_streaming_response(raw: Any) -> bool:
    """Return True if *raw* is a live response with a readable byte body."""
    return callable(getattr(raw, "aiter_bytes", None))


class ModelAPIAdapter(abc.ABC):
    """Translate between UnifiedRequestParams/UnifiedResponse and one wire protocol.

    Subclasses form a closed set (Chat Completions, Responses API) chosen by
    an external factory. Instances only hold the immutable capability
    descriptor and model profile, so one adapter can serve concurrent calls.
    """

    endpoint_path: str = ""

    def __init__(self, capabilities: ModelCapabilities, profile: ModelProfile) -> None:
        self.capabilities = capabilities
        self.profile = profile

    # -----------------------------------------------------------------
    # Operations
    # -----------------------------------------------------------------

    @abc.abstractmethod
    def create_request(self, params: UnifiedRequestParams) -> dict[str, Any]:
        """Build the JSON-serializable wire payload for *params*."""

    @abc.abstractmethod
    def build_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Serialize tool definitions into the protocol's descriptor shape."""

    @abc.abstractmethod
    def parse_buffered_response(self, raw: Mapping[str, Any]) -> UnifiedResponse:
        """Map a complete (non-streaming) JSON response."""

    async def parse_streaming_response(
        self, raw: Any, cancel: asyncio.Event | None = None
    ) -> AsyncIterator[StreamEvent]:
        """Yield StreamEvents from a live response. Unsupported by default."""
        return
        yield  # pragma: no cover

    async def parse_response(
        self, raw: Any, cancel: asyncio.Event | None = None
    ) -> UnifiedResponse:
        """Normalize either kind of raw response into a UnifiedResponse.

        Live responses are consumed through :meth:`parse_streaming_response`
        and reduced to one message; mappings are parsed directly.

        Raises:
            StreamError: If *raw* is neither a mapping nor a readable stream.
        """
        if is_streaming_response(raw):
            return await collect_stream(self.parse_streaming_response(raw, cancel))
        if isinstance(raw, Mapping):
            return self.parse_buffered_response(raw)
        raise StreamError(f"Unsupported raw response type: {type(raw).__name__}")

    # -----------------------------------------------------------------
    # Capability-driven helpers
    # -----------------------------------------------------------------

    def max_tokens_field(self) -> str:
        return self.capabilities.max_tokens_field

    def resolve_temperature(self, requested: float | None = None) -> float:
        """Resolve the temperature the model will actually accept.

        ``fixed_one`` models always get 1.0. ``restricted`` models are
        capped at 1.0. Otherwise the caller's value wins, defaulting to 0.7.
        """
        mode = self.capabilities.temperature_mode
        if mode == TemperatureMode.FIXED_ONE:
            return 1.0
        value = DEFAULT_TEMPERATURE if requested is None else float(requested)
        if mode == TemperatureMode.RESTRICTED:
            return min(1.0, value)
        return value

    def should_include_reasoning_effort(self) -> bool:
        return self.capabilities.supports_reasoning_effort

    def should_include_verbosity(self) -> bool:
        return self.capabilities.supports_verbosity

    @staticmethod
    def select_tools(params: UnifiedRequestParams) -> list[ToolDefinition]:
        """Return the request's tools, restricted to ``allowed_tools`` if set."""
        if params.allowed_tools is None:
            return list(params.tools)
        allowed = set(params.allowed_tools)
        return [t for t in params.tools if t.name in allowed]

    @staticmethod
    def _require_stream(raw: Any) -> None:
        if not is_streaming_response(raw):
            raise StreamError(
                f"Response of type {type(raw).__name__} has no readable body"
            )
