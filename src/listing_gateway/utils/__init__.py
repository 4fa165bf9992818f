"""Utility functions for the listing gateway."""

from .error_handlers import (
    ConfigurationError,
    ErrorKind,
    ListingGatewayError,
    ListingGenerationError,
    ProviderError,
    RecordNotFoundError,
)
from .image_utils import encode_image_file, resize_image, save_upload

__all__ = [
    "ConfigurationError",
    "ErrorKind",
    "ListingGatewayError",
    "ListingGenerationError",
    "ProviderError",
    "RecordNotFoundError",
    "encode_image_file",
    "resize_image",
    "save_upload",
]
