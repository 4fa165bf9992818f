"""Data structures for the listing gateway."""

from .listing import (
    AmazonListing,
    EbayListing,
    GenerationRequest,
    ListingContent,
    Platform,
    ProviderName,
    RetryState,
    TaskKind,
    TranslationRequest,
)

__all__ = [
    "AmazonListing",
    "EbayListing",
    "GenerationRequest",
    "ListingContent",
    "Platform",
    "ProviderName",
    "RetryState",
    "TaskKind",
    "TranslationRequest",
]
