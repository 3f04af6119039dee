"""Core data models for the model API adapter layer.

Defines the provider-neutral message format, content blocks, tool
definitions, request/response structures, streaming event types, and the
read-only capability descriptor and model profile that adapters consume.
"""

from __future__ import annotations

import enum
import json
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from kode_llm.errors import ConfigurationError

DEFAULT_BASE_URL = "https://api.openai.com/v1"

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Role(str, enum.Enum):
    """Message roles following the standard LLM conversation model."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    DEVELOPER = "developer"


class ContentKind(str, enum.Enum):
    """Discriminator for ContentPart tagged union."""

    TEXT = "text"
    IMAGE = "image"
    TOOL_USE = "tool_use"
    TOOL_RESULT = "tool_result"


class StreamEventType(str, enum.Enum):
    """Event types emitted during streaming responses."""

    MESSAGE_START = "message_start"
    TEXT_DELTA = "text_delta"
    TOOL_REQUEST = "tool_request"
    USAGE = "usage"
    MESSAGE_STOP = "message_stop"
    ERROR = "error"


class ReasoningEffort(str, enum.Enum):
    """Model reasoning budget level."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TemperatureMode(str, enum.Enum):
    """How a model family treats the sampling temperature."""

    FREE = "free"
    FIXED_ONE = "fixed_one"
    RESTRICTED = "restricted"


class ApiArchitecture(str, enum.Enum):
    """Wire protocol a model is served through."""

    CHAT_COMPLETIONS = "chat_completions"
    RESPONSES_API = "responses_api"


# ---------------------------------------------------------------------------
# Content Parts (Tagged Union)
# ---------------------------------------------------------------------------


@dataclass
class TextContent:
    """Plain text content with optional citations."""

    kind: ContentKind = field(default=ContentKind.TEXT, init=False)
    text: str = ""
    citations: list[Any] = field(default_factory=list)


@dataclass
class ImageContent:
    """Image content via URL or base64 data.

    Raises:
        ValueError: If both ``url`` and ``base64_data`` are None.
    """

    kind: ContentKind = field(default=ContentKind.IMAGE, init=False)
    url: str | None = None
    base64_data: str | None = None
    media_type: str = "image/png"

    def __post_init__(self) -> None:
        if self.url is None and self.base64_data is None:
            raise ValueError(
                "ImageContent requires at least one of 'url' or 'base64_data'"
            )

    def to_url(self) -> str:
        """Return the image as a URL, building a data URL for inline bytes."""
        return self.url or f"data:{self.media_type};base64,{self.base64_data}"


@dataclass
class ToolCallContent:
    """A tool invocation requested by the assistant (tool-use block).

    Maintains both a parsed ``arguments`` dict and the raw
    ``arguments_json`` string. Whichever one is provided is mirrored into
    the other on construction.
    """

    kind: ContentKind = field(default=ContentKind.TOOL_USE, init=False)
    tool_call_id: str = ""
    tool_name: str = ""
    arguments: dict[str, Any] = field(default_factory=dict)
    arguments_json: str = ""

    def __post_init__(self) -> None:
        if self.arguments_json and not self.arguments:
            try:
                parsed = json.loads(self.arguments_json)
            except (json.JSONDecodeError, TypeError):
                parsed = None
            if isinstance(parsed, dict):
                self.arguments = parsed
        elif self.arguments and not self.arguments_json:
            self.arguments_json = json.dumps(self.arguments)


@dataclass
class ToolResultContent:
    """Result of a tool call execution."""

    kind: ContentKind = field(default=ContentKind.TOOL_RESULT, init=False)
    tool_call_id: str = ""
    content: str = ""
    is_error: bool = False


ContentPart = TextContent | ImageContent | ToolCallContent | ToolResultContent


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


@dataclass
class Message:
    """A single message in a conversation."""

    role: Role
    content: list[ContentPart] = field(default_factory=list)

    @staticmethod
    def system(text: str) -> Message:
        return Message(role=Role.SYSTEM, content=[TextContent(text=text)])

    @staticmethod
    def user(text: str) -> Message:
        return Message(role=Role.USER, content=[TextContent(text=text)])

    @staticmethod
    def assistant(text: str) -> Message:
        return Message(role=Role.ASSISTANT, content=[TextContent(text=text)])

    @staticmethod
    def tool_result(tool_call_id: str, content: str, is_error: bool = False) -> Message:
        """Create a tool-result message.

        Args:
            tool_call_id: The ID of the tool call this result answers.
            content: The string result (or error description).
            is_error: Whether the tool execution failed.

        Returns:
            A Message with role TOOL and a single ToolResultContent part.
        """
        return Message(
            role=Role.TOOL,
            content=[
                ToolResultContent(
                    tool_call_id=tool_call_id,
                    content=content,
                    is_error=is_error,
                )
            ],
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Message:
        """Build a Message from a Chat-Completions-style dict.

        Understands string or list ``content`` (``text`` and ``image_url``
        parts), assistant ``tool_calls``, and tool ``tool_call_id``.

        Raises:
            ValueError: If ``role`` is missing or unknown.
        """
        try:
            role = Role(data["role"])
        except (KeyError, ValueError) as exc:
            raise ValueError(f"Invalid message role: {data.get('role')!r}") from exc

        raw_content = data.get("content") or ""

        if role == Role.TOOL:
            text = raw_content if isinstance(raw_content, str) else _join_text(raw_content)
            return cls.tool_result(str(data.get("tool_call_id", "")), text)

        parts: list[ContentPart] = []
        if isinstance(raw_content, str):
            if raw_content:
                parts.append(TextContent(text=raw_content))
        else:
            for part in raw_content:
                if not isinstance(part, Mapping):
                    continue
                if part.get("type") == "text":
                    parts.append(TextContent(text=part.get("text", "")))
                elif part.get("type") == "image_url":
                    image = part.get("image_url")
                    url = image.get("url") if isinstance(image, Mapping) else image
                    if isinstance(url, str) and url:
                        parts.append(ImageContent(url=url))

        for tc in data.get("tool_calls") or []:
            fn = tc.get("function") or {}
            parts.append(
                ToolCallContent(
                    tool_call_id=tc.get("id", ""),
                    tool_name=fn.get("name", ""),
                    arguments_json=fn.get("arguments", "") or "",
                )
            )
        return cls(role=role, content=parts)

    def text(self) -> str:
        """Concatenate the text of all TextContent parts."""
        return "".join(
            part.text for part in self.content if isinstance(part, TextContent)
        )

    def tool_calls(self) -> list[ToolCallContent]:
        return [p for p in self.content if isinstance(p, ToolCallContent)]

    def tool_results(self) -> list[ToolResultContent]:
        return [p for p in self.content if isinstance(p, ToolResultContent)]


def _join_text(parts: Any) -> str:
    texts = []
    for part in parts:
        if isinstance(part, Mapping):
            text = part.get("text") or part.get("content")
            if isinstance(text, str) and text:
                texts.append(text)
    return "\n".join(texts)


# ---------------------------------------------------------------------------
# Tool Definitions
# ---------------------------------------------------------------------------


@dataclass
class ToolDefinition:
    """Shape of a tool the model may request. Never executed here."""

    name: str
    description: str = ""
    parameters: dict[str, Any] = field(default_factory=dict)
    freeform: bool = False

    def to_json_schema(self) -> dict[str, Any]:
        """Return the input schema, defaulting to an empty object schema."""
        if "type" in self.parameters or "properties" in self.parameters:
            return dict(self.parameters)
        return {"type": "object", "properties": {}}


# ---------------------------------------------------------------------------
# Capabilities / Profile
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModelCapabilities:
    """Read-only feature flags for one model and provider combination."""

    max_tokens_field: str = "max_tokens"
    temperature_mode: TemperatureMode = TemperatureMode.FREE
    supports_reasoning_effort: bool = False
    supports_verbosity: bool = False
    supports_parallel_tool_calls: bool = True
    supports_freeform_tools: bool = False
    supports_stateful_continuation: bool = False
    api_architecture: ApiArchitecture = ApiArchitecture.CHAT_COMPLETIONS


@dataclass(frozen=True)
class ModelProfile:
    """Which model to call and where."""

    model_name: str
    base_url: str = DEFAULT_BASE_URL
    api_key: str | None = field(default=None, repr=False)
    reasoning_effort: ReasoningEffort | None = None
    previous_response_id: str | None = None

    @classmethod
    def from_env(cls, model_name: str, **overrides: Any) -> ModelProfile:
        """Create a profile from environment variables.

        Environment variables:
            OPENAI_API_KEY: bearer key attached by the transport
            OPENAI_BASE_URL: endpoint base (defaults to the public API)

        Raises:
            ConfigurationError: If ``model_name`` is empty.
        """
        if not model_name:
            raise ConfigurationError("ModelProfile requires a model name")
        values: dict[str, Any] = {
            "base_url": os.environ.get("OPENAI_BASE_URL") or DEFAULT_BASE_URL,
            "api_key": os.environ.get("OPENAI_API_KEY") or None,
        }
        values.update(overrides)
        return cls(model_name=model_name, **values)


# ---------------------------------------------------------------------------
# Request / Response
# ---------------------------------------------------------------------------


@dataclass
class UnifiedRequestParams:
    """Provider-neutral request.

    Raises:
        ValueError: If ``max_tokens`` is not a positive integer.
    """

    messages: list[Message] = field(default_factory=list)
    system_prompt: list[str] = field(default_factory=list)
    tools: list[ToolDefinition] = field(default_factory=list)
    max_tokens: int = 4096
    stream: bool = False
    reasoning_effort: ReasoningEffort | None = None
    verbosity: str | None = None
    previous_response_id: str | None = None
    temperature: float | None = None
    allowed_tools: list[str] | None = None

    def __post_init__(self) -> None:
        if isinstance(self.max_tokens, bool) or not isinstance(self.max_tokens, int):
            raise ValueError(f"max_tokens must be an int, got {self.max_tokens!r}")
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be > 0, got {self.max_tokens}")


@dataclass
class TokenUsage:
    """Canonical token consumption, normalized once per response."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int | None = None
    reasoning_tokens: int | None = None

    @property
    def total(self) -> int:
        """Reported total, or input + output when the provider omitted it."""
        if self.total_tokens is not None:
            return self.total_tokens
        return self.input_tokens + self.output_tokens


@dataclass
class ToolCall:
    """A tool call as reported by the provider, arguments left as a string."""

    id: str
    name: str
    arguments: str = "{}"


@dataclass
class UnifiedResponse:
    """A complete provider-neutral response.

    ``content`` is never empty: an empty result holds one empty text block.
    """

    id: str
    content: list[ContentPart] = field(default_factory=list)
    tool_calls: list[ToolCall] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    response_id: str | None = None

    def __post_init__(self) -> None:
        if not self.content:
            self.content = [TextContent(text="")]

    def text(self) -> str:
        return "".join(p.text for p in self.content if isinstance(p, TextContent))


# ---------------------------------------------------------------------------
# Streaming Events
# ---------------------------------------------------------------------------


@dataclass
class ToolRequest:
    """A complete tool call surfaced by a stream; ``input`` is the raw JSON."""

    id: str
    name: str
    input: str


@dataclass
class StreamEvent:
    """A single event in a streaming response."""

    type: StreamEventType
    delta: str = ""
    message: Message | None = None
    response_id: str | None = None
    tool: ToolRequest | None = None
    usage: TokenUsage | None = None
    error: str | None = None

    @classmethod
    def message_start(cls, response_id: str) -> StreamEvent:
        return cls(
            type=StreamEventType.MESSAGE_START,
            message=Message(role=Role.ASSISTANT),
            response_id=response_id,
        )

    @classmethod
    def message_stop(cls, text: str, response_id: str) -> StreamEvent:
        return cls(
            type=StreamEventType.MESSAGE_STOP,
            message=Message(role=Role.ASSISTANT, content=[TextContent(text=text)]),
            response_id=response_id,
        )
