"""
LLM integration modules for the listing gateway.

This package contains the LLM gateway, backoff policy, prompt library and
provider adapters.
"""

from .backoff_policy import BackoffDecision, BackoffPolicy
from .llm_gateway import (
    GatewayConfig,
    LLMGateway,
    ProviderConfig,
    ProviderFactory,
    TerminalFailureMode,
)
from .prompt_library import BuiltPrompt, PromptLibrary, PromptTemplate
from .providers.base_provider import BaseLLMProvider, ParseFailurePolicy
from .providers.google_provider import GoogleProvider
from .providers.openai_provider import OpenAIProvider

__all__ = [
    "BackoffDecision",
    "BackoffPolicy",
    "GatewayConfig",
    "LLMGateway",
    "ProviderConfig",
    "ProviderFactory",
    "TerminalFailureMode",
    "BuiltPrompt",
    "PromptLibrary",
    "PromptTemplate",
    "BaseLLMProvider",
    "ParseFailurePolicy",
    "GoogleProvider",
    "OpenAIProvider",
]
