"""LLM package initialization."""

from workflow_service.llm.openai_provider import OpenAIProvider
from workflow_service.llm.provider import LLMInvokeError, LLMProvider

__all__ = [
    "LLMInvokeError",
    "LLMProvider",
    "OpenAIProvider",
]
