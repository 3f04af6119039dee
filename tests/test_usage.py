"""Tests for kode_llm.usage."""

from __future__ import annotations

from kode_llm.models import TokenUsage
from kode_llm.usage import normalize_usage


class TestNormalizeUsage:
    def test_none_gives_zeroes(self) -> None:
        assert normalize_usage(None) == TokenUsage()

    def test_empty_mapping_gives_zeroes(self) -> None:
        assert normalize_usage({}) == TokenUsage()

    def test_chat_completions_fields(self) -> None:
        usage = normalize_usage(
            {"prompt_tokens": 12, "completion_tokens": 30, "total_tokens": 42}
        )
        assert usage.input_tokens == 12
        assert usage.output_tokens == 30
        assert usage.total_tokens == 42

    def test_responses_fields_with_reasoning_details(self) -> None:
        usage = normalize_usage(
            {
                "input_tokens": 5,
                "output_tokens": 2,
                "output_tokens_details": {"reasoning_tokens": 1},
            }
        )
        assert usage.input_tokens == 5
        assert usage.output_tokens == 2
        assert usage.total_tokens is None
        assert usage.reasoning_tokens == 1
        assert usage.total == 7

    def test_camel_case_fields(self) -> None:
        usage = normalize_usage({"promptTokens": 3, "completionTokens": 4})
        assert (usage.input_tokens, usage.output_tokens) == (3, 4)

    def test_completion_tokens_details(self) -> None:
        usage = normalize_usage(
            {
                "prompt_tokens": 1,
                "completion_tokens": 9,
                "completion_tokens_details": {"reasoning_tokens": 6},
            }
        )
        assert usage.reasoning_tokens == 6

    def test_missing_counts_default_to_zero(self) -> None:
        usage = normalize_usage({"total_tokens": 10})
        assert usage.input_tokens == 0
        assert usage.output_tokens == 0
        assert usage.total == 10

    def test_non_numeric_counts_ignored(self) -> None:
        usage = normalize_usage(
            {"prompt_tokens": "many", "input_tokens": 4, "completion_tokens": None}
        )
        assert usage.input_tokens == 4
        assert usage.output_tokens == 0
