"""Wire-protocol adapters for the model API layer."""

from kode_llm.adapters.base import ModelAPIAdapter
from kode_llm.adapters.chat_completions import ChatCompletionsAdapter
from kode_llm.adapters.responses_api import ResponsesAPIAdapter

__all__ = [
    "ModelAPIAdapter",
    "ChatCompletionsAdapter",
    "ResponsesAPIAdapter",
]
