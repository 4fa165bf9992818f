"""
Error handling utilities for the Listing Gateway.

This module provides the error taxonomy and custom exceptions used by the
provider adapters, the gateway and the HTTP layer.

Classes:
    ErrorKind: Classification of a failed provider call.
    ListingGatewayError: Base exception for all gateway errors.
    ProviderError: A single provider call failed with a classified kind.
    ListingGenerationError: Terminal failure carrying a fallback payload.
    ConfigurationError: Exception for configuration errors.
    RecordNotFoundError: Exception for unknown record ids.

Functions:
    kind_for_status: Map an HTTP status code to an ErrorKind.
    classify_exception: Map an arbitrary exception to an ErrorKind.
    log_error_with_context: Log error with full context for debugging.
"""

import asyncio
import logging
import traceback
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Classification of a failed provider call."""

    TRANSIENT = "transient"
    PERMANENT = "permanent"
    MALFORMED_RESPONSE = "malformed_response"
    EMPTY_RESPONSE = "empty_response"


class ListingGatewayError(Exception):
    """
    Base exception for listing gateway errors.

    Attributes:
        message: Error message describing what went wrong.
        provider: Optional provider name involved in the failure.
        stage: Optional stage where the error occurred.
        recoverable: Whether the error is recoverable with retry.
        original_error: Optional underlying exception that was wrapped.
    """

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        stage: Optional[str] = None,
        recoverable: bool = False,
        original_error: Optional[Exception] = None,
    ):
        self.message = message
        self.provider = provider
        self.stage = stage
        self.recoverable = recoverable
        self.original_error = original_error
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert exception to dictionary for logging and API responses.

        Returns:
            Dictionary containing error_type, message, provider, stage,
            recoverable status, and original error information if available.
        """
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "provider": self.provider,
            "stage": self.stage,
            "recoverable": self.recoverable,
        }

        if self.original_error:
            result["original_error_type"] = type(self.original_error).__name__
            result["original_error_message"] = str(self.original_error)

        return result


class ProviderError(ListingGatewayError):
    """
    A single provider call failed.

    Attributes:
        kind: ErrorKind classification driving the retry decision.
        status_code: HTTP status code if applicable.
        raw_text: Raw provider text, kept for malformed responses.
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        raw_text: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            provider=provider,
            stage="provider_call",
            recoverable=kind is ErrorKind.TRANSIENT,
            original_error=original_error,
        )
        self.kind = kind
        self.status_code = status_code
        self.raw_text = raw_text

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind.value
        result["status_code"] = self.status_code
        if self.raw_text is not None:
            result["raw_text"] = self.raw_text[:500]
        return result


class ListingGenerationError(ListingGatewayError):
    """
    Terminal failure of a generate/translate call.

    Raised at the boundary instead of returning the error payload, so the
    route handler can pick the HTTP status. Always carries a well-shaped
    listing dict in fallback_data.

    Attributes:
        fallback_data: Wire-shaped listing the caller can render.
        kind: ErrorKind of the last provider failure.
    """

    def __init__(
        self,
        message: str,
        fallback_data: Dict[str, Any],
        kind: Optional[ErrorKind] = None,
        provider: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            provider=provider,
            stage="gateway",
            recoverable=False,
            original_error=original_error,
        )
        self.fallback_data = fallback_data
        self.kind = kind

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["kind"] = self.kind.value if self.kind else None
        return result


class ConfigurationError(ListingGatewayError):
    """
    Exception for configuration errors.

    Attributes:
        config_key: Optional configuration key that caused the error.
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        super().__init__(
            message=message,
            stage="initialization",
            recoverable=False,  # Config errors not recoverable without fix
            original_error=original_error,
        )
        self.config_key = config_key

    def to_dict(self) -> Dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


class RecordNotFoundError(ListingGatewayError):
    """Raised when a saved record does not exist."""

    def __init__(self, record_id: str):
        super().__init__(message=f"Record not found: {record_id}", stage="storage")
        self.record_id = record_id


def kind_for_status(status_code: int) -> ErrorKind:
    """
    Map an HTTP status code to an ErrorKind.

    429 and 5xx are transient, every other 4xx is permanent.

    Args:
        status_code: HTTP status code returned by the provider.

    Returns:
        ErrorKind for the status.

    Example:
        >>> kind_for_status(503)
        <ErrorKind.TRANSIENT: 'transient'>
        >>> kind_for_status(401)
        <ErrorKind.PERMANENT: 'permanent'>
    """
    if status_code == 429 or status_code >= 500:
        return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def classify_exception(error: Exception) -> ErrorKind:
    """
    Determine the ErrorKind of an exception raised during a provider call.

    Args:
        error: The exception to evaluate.

    Returns:
        ErrorKind for the error.

    Note:
        - ProviderError instances keep their own kind.
        - Timeouts and network errors (ConnectionError, OSError) are transient.
        - Objects exposing an integer status_code or code are mapped with
          kind_for_status.
        - Errors whose message names a network condition (ECONNRESET,
          ETIMEDOUT, ...) are transient.
        - All other errors default to permanent.
    """
    if isinstance(error, ProviderError):
        return error.kind

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError, OSError)):
        return ErrorKind.TRANSIENT

    for attr in ("status_code", "code"):
        status = getattr(error, attr, None)
        if isinstance(status, int) and 400 <= status < 600:
            return kind_for_status(status)

    error_str = str(error).lower()
    transient_keywords = [
        "econnreset",
        "econnrefused",
        "etimedout",
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
    ]
    if any(keyword in error_str for keyword in transient_keywords):
        return ErrorKind.TRANSIENT

    return ErrorKind.PERMANENT


def log_error_with_context(
    error: Exception, logger: logging.Logger, context: Dict[str, Any]
) -> None:
    """
    Log error with context information for debugging.

    Args:
        error: The exception that occurred.
        logger: Logger instance to use for logging.
        context: Dictionary with contextual information (provider, task, etc.).

    Note:
        Stack traces are only logged when logger is at DEBUG level or lower.
    """
    error_type = type(error).__name__
    provider = context.get("provider", "unknown")
    task = context.get("task", "unknown")

    logger.error(f"Error in {task} via {provider}: [{error_type}] {error}")

    if isinstance(error, ListingGatewayError) and error.original_error:
        original_type = type(error.original_error).__name__
        logger.error(f"  Original error: [{original_type}] {error.original_error}")

    for key, value in context.items():
        if key not in ["provider", "task"]:
            logger.error(f"  {key}: {value}")

    if logger.isEnabledFor(logging.DEBUG):
        logger.debug("Stack trace:")
        logger.debug(traceback.format_exc())
