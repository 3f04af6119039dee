"""Shared fixtures for adapter tests and opt-in smoke tests."""

from __future__ import annotations

import os

import pytest
from dotenv import load_dotenv

from kode_llm.models import ModelCapabilities, ModelProfile, TemperatureMode

# Load API keys from .env.local (project root)
load_dotenv(".env.local")


def _has_key(env_var: str) -> bool:
    """Return True if the environment variable is set and non-placeholder."""
    val = os.environ.get(env_var, "")
    return bool(val) and val != "your-key-here"


@pytest.fixture(scope="session")
def requires_openai_key() -> None:
    """Skip the test if OPENAI_API_KEY is missing or placeholder."""
    if not _has_key("OPENAI_API_KEY"):
        pytest.skip("OPENAI_API_KEY not set, skipping smoke test")


@pytest.fixture()
def chat_capabilities() -> ModelCapabilities:
    return ModelCapabilities(max_tokens_field="max_completion_tokens")


@pytest.fixture()
def responses_capabilities() -> ModelCapabilities:
    return ModelCapabilities(
        max_tokens_field="max_completion_tokens",
        temperature_mode=TemperatureMode.FIXED_ONE,
        supports_reasoning_effort=True,
        supports_verbosity=True,
        supports_parallel_tool_calls=True,
        supports_freeform_tools=True,
        supports_stateful_continuation=True,
    )


@pytest.fixture()
def profile() -> ModelProfile:
    return ModelProfile(model_name="gpt-5", base_url="https://api.test/v1")
