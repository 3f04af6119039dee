"""Token usage normalization.

Providers report usage under different field names (``prompt_tokens`` vs
``input_tokens`` vs ``promptTokens``). Everything is mapped to one
:class:`~kode_llm.models.TokenUsage` at the boundary.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from kode_llm.models import TokenUsage

_INPUT_KEYS = ("prompt_tokens", "input_tokens", "promptTokens")
_OUTPUT_KEYS = ("completion_tokens", "output_tokens", "completionTokens")
_TOTAL_KEYS = ("total_tokens", "totalTokens")
_REASONING_KEYS = ("reasoning_tokens", "reasoningTokens")
_DETAIL_KEYS = ("output_tokens_details", "completion_tokens_details")


def _first(usage: Mapping[str, Any], keys: tuple[str, ...]) -> int | None:
    for key in keys:
        value = usage.get(key)
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return int(value)
    return None


def _reasoning(usage: Mapping[str, Any]) -> int | None:
    value = _first(usage, _REASONING_KEYS)
    if value is not None:
        return value
    for key in _DETAIL_KEYS:
        details = usage.get(key)
        if isinstance(details, Mapping):
            value = _first(details, _REASONING_KEYS)
            if value is not None:
                return value
    return None


def normalize_usage(usage: Mapping[str, Any] | None) -> TokenUsage:
    """Map a provider usage object onto the canonical TokenUsage.

    Missing input/output counts become 0. ``total_tokens`` and
    ``reasoning_tokens`` stay None unless the provider reported them;
    reasoning counts nested under ``output_tokens_details`` or
    ``completion_tokens_details`` are picked up too.

    Args:
        usage: The provider's ``usage`` object, or None.

    Returns:
        The normalized TokenUsage.
    """
    if not usage:
        return TokenUsage()
    return TokenUsage(
        input_tokens=_first(usage, _INPUT_KEYS) or 0,
        output_tokens=_first(usage, _OUTPUT_KEYS) or 0,
        total_tokens=_first(usage, _TOTAL_KEYS),
        reasoning_tokens=_reasoning(usage),
    )
