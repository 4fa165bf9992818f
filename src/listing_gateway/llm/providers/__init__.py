"""LLM provider adapters."""

from .base_provider import BaseLLMProvider, ParseFailurePolicy, ProviderResponse, TokenUsage
from .google_provider import GoogleProvider
from .openai_provider import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "ParseFailurePolicy",
    "ProviderResponse",
    "TokenUsage",
    "GoogleProvider",
    "OpenAIProvider",
]
