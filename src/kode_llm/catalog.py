"""Capability catalog for known model families.

Maps model-name prefixes to default :class:`ModelCapabilities`. The
catalog is advisory: an external registry may supply its own descriptor,
and unknown model strings fall back to conservative Chat Completions
defaults.
"""

from __future__ import annotations

from kode_llm.models import ApiArchitecture, ModelCapabilities, TemperatureMode

_REASONING_CHAT = ModelCapabilities(
    max_tokens_field="max_completion_tokens",
    temperature_mode=TemperatureMode.FIXED_ONE,
    supports_reasoning_effort=True,
    supports_parallel_tool_calls=False,
)

# Ordered most-specific first; the first matching prefix wins.
CAPABILITIES: list[tuple[str, ModelCapabilities]] = [
    (
        "gpt-5",
        ModelCapabilities(
            max_tokens_field="max_completion_tokens",
            temperature_mode=TemperatureMode.FIXED_ONE,
            supports_reasoning_effort=True,
            supports_verbosity=True,
            supports_parallel_tool_calls=True,
            supports_freeform_tools=True,
            supports_stateful_continuation=True,
            api_architecture=ApiArchitecture.RESPONSES_API,
        ),
    ),
    ("o1", _REASONING_CHAT),
    ("o3", _REASONING_CHAT),
    ("o4", _REASONING_CHAT),
    (
        "gpt-4.1",
        ModelCapabilities(max_tokens_field="max_completion_tokens"),
    ),
    (
        "gpt-4o",
        ModelCapabilities(max_tokens_field="max_completion_tokens"),
    ),
]

DEFAULT_CAPABILITIES = ModelCapabilities()


def get_capabilities(model_name: str) -> ModelCapabilities:
    """Return the catalog descriptor for *model_name*, or the defaults."""
    name = model_name.lower()
    # Provider-qualified names such as "openai/gpt-5" match on the last segment.
    name = name.rsplit("/", 1)[-1]
    for prefix, capabilities in CAPABILITIES:
        if name.startswith(prefix):
            return capabilities
    return DEFAULT_CAPABILITIES


def list_capabilities(
    architecture: ApiArchitecture | None = None,
) -> list[tuple[str, ModelCapabilities]]:
    """List catalog entries, optionally filtered by wire protocol."""
    if architecture is None:
        return list(CAPABILITIES)
    return [
        (prefix, caps)
        for prefix, caps in CAPABILITIES
        if caps.api_architecture == architecture
    ]
