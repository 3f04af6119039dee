"""kode-llm - provider-neutral model API adapters and streaming translation."""

from __future__ import annotations

from kode_llm.adapters import ChatCompletionsAdapter, ModelAPIAdapter, ResponsesAPIAdapter
from kode_llm.catalog import get_capabilities, list_capabilities
from kode_llm.errors import (
    AbortError,
    AuthenticationError,
    ConfigurationError,
    KodeError,
    NetworkError,
    ProviderError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    StreamError,
)
from kode_llm.models import (
    ApiArchitecture,
    ContentPart,
    ImageContent,
    Message,
    ModelCapabilities,
    ModelProfile,
    ReasoningEffort,
    Role,
    StreamEvent,
    StreamEventType,
    TemperatureMode,
    TextContent,
    TokenUsage,
    ToolCall,
    ToolCallContent,
    ToolDefinition,
    ToolRequest,
    ToolResultContent,
    UnifiedRequestParams,
    UnifiedResponse,
)
from kode_llm.sse import SSEDecoder, iter_sse_events
from kode_llm.streaming import StreamCollector, collect_stream
from kode_llm.transport import HTTPTransport
from kode_llm.usage import normalize_usage

__all__ = [
    # Adapters
    "ModelAPIAdapter",
    "ChatCompletionsAdapter",
    "ResponsesAPIAdapter",
    # Streaming
    "SSEDecoder",
    "iter_sse_events",
    "StreamCollector",
    "collect_stream",
    "normalize_usage",
    # Transport
    "HTTPTransport",
    # Catalog
    "get_capabilities",
    "list_capabilities",
    # Errors
    "AbortError",
    "AuthenticationError",
    "ConfigurationError",
    "KodeError",
    "NetworkError",
    "ProviderError",
    "RateLimitError",
    "RequestTimeoutError",
    "ServerError",
    "StreamError",
    # Models
    "ApiArchitecture",
    "ContentPart",
    "ImageContent",
    "Message",
    "ModelCapabilities",
    "ModelProfile",
    "ReasoningEffort",
    "Role",
    "StreamEvent",
    "StreamEventType",
    "TemperatureMode",
    "TextContent",
    "TokenUsage",
    "ToolCall",
    "ToolCallContent",
    "ToolDefinition",
    "ToolRequest",
    "ToolResultContent",
    "UnifiedRequestParams",
    "UnifiedResponse",
]
