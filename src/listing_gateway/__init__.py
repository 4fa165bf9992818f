"""
Listing Gateway

LLM-backed generation and translation of Amazon and eBay product listings.
"""

__version__ = "0.1.0"

from .llm import LLMGateway, GatewayConfig, ProviderConfig
from .models import GenerationRequest, ListingContent, Platform, TranslationRequest

__all__ = [
    "LLMGateway",
    "GatewayConfig",
    "ProviderConfig",
    "GenerationRequest",
    "ListingContent",
    "Platform",
    "TranslationRequest",
    "__version__",
]
