"""
Base provider interface for LLM integrations.

A provider performs exactly one remote call per invocation and either
returns a parsed listing or raises ProviderError with a classified kind.
Retrying is the gateway's job.
"""

import asyncio
import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ...models.listing import ListingContent, Platform
from ...utils.error_handlers import ErrorKind, ProviderError, classify_exception
from ..prompt_library import BuiltPrompt

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^\s*```(?:json)?\s*(.*?)\s*```\s*$", re.DOTALL)


class ParseFailurePolicy(str, Enum):
    """What a provider does when the model returns non-JSON text."""

    FAIL = "fail"
    FALLBACK = "fallback"


@dataclass
class TokenUsage:
    """
    Token usage tracking.

    Attributes:
        input_tokens: Number of input tokens
        output_tokens: Number of output tokens
        image_count: Number of images in request
    """

    input_tokens: int = 0
    output_tokens: int = 0
    image_count: int = 0


@dataclass
class ProviderResponse:
    """
    Raw text returned by one provider call.

    Attributes:
        content: Response text content
        model_used: Model identifier
        provider: Provider name
        tokens_used: Token usage information
        finish_reason: Completion reason reported by the provider
        timestamp: Response timestamp
    """

    content: str
    model_used: str
    provider: str
    tokens_used: TokenUsage = field(default_factory=TokenUsage)
    finish_reason: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


def strip_code_fence(text: str) -> str:
    """Remove a surrounding ```json fence if the model added one."""
    match = _FENCE.match(text)
    return match.group(1) if match else text.strip()


class BaseLLMProvider(ABC):
    """
    Abstract base class for LLM providers.

    Subclasses implement _request(), the SDK-specific remote call. This class
    adds the timeout, error classification, strict JSON decoding and the
    parse-failure policy shared by every provider.

    Attributes:
        name: Provider name used in logs and errors.
        default_model: Model used when the request names none.
        timeout: Per-call timeout in seconds.
        on_parse_failure: FAIL raises MALFORMED_RESPONSE, FALLBACK returns a
            synthesized listing.
        json_mode: Ask the provider for JSON output when supported.
    """

    name: str = "base"

    def __init__(
        self,
        default_model: str,
        timeout: float = 30.0,
        on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK,
        json_mode: bool = True,
    ) -> None:
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        self.default_model = default_model
        self.timeout = timeout
        self.on_parse_failure = ParseFailurePolicy(on_parse_failure)
        self.json_mode = json_mode

    @abstractmethod
    async def _request(
        self,
        prompt: BuiltPrompt,
        image_base64: Optional[str],
        model: str,
        temperature: float,
    ) -> ProviderResponse:
        """
        Make the SDK call.

        Implementations raise ProviderError for failures they can classify;
        anything else is classified by call().
        """
        pass

    async def call(
        self,
        prompt: BuiltPrompt,
        image_base64: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
    ) -> ProviderResponse:
        """
        Execute one provider call bounded by the configured timeout.

        Args:
            prompt: System and user prompt.
            image_base64: Optional base64-encoded JPEG.
            model: Model identifier, defaults to default_model.
            temperature: Sampling temperature.

        Returns:
            ProviderResponse with non-empty content.

        Raises:
            ProviderError: TRANSIENT, PERMANENT or EMPTY_RESPONSE.
        """
        model = model or self.default_model
        try:
            response = await asyncio.wait_for(
                self._request(prompt, image_base64, model, temperature),
                timeout=self.timeout,
            )
        except ProviderError:
            raise
        except asyncio.TimeoutError as e:
            raise ProviderError(
                f"{self.name} call timed out after {self.timeout:.0f}s",
                kind=ErrorKind.TRANSIENT,
                provider=self.name,
                original_error=e,
            ) from e
        except Exception as e:
            raise ProviderError(
                f"{self.name} call failed: {e}",
                kind=classify_exception(e),
                provider=self.name,
                status_code=getattr(e, "status_code", None),
                original_error=e,
            ) from e

        if not response.content or not response.content.strip():
            raise ProviderError(
                f"{self.name} returned an empty response",
                kind=ErrorKind.EMPTY_RESPONSE,
                provider=self.name,
            )
        return response

    async def generate_listing(
        self,
        prompt: BuiltPrompt,
        platform: Platform,
        description_text: str,
        image_base64: Optional[str] = None,
        model: Optional[str] = None,
        temperature: float = 0.7,
    ) -> ListingContent:
        """
        Generate a listing and decode it.

        Raises:
            ProviderError: On call failure, or MALFORMED_RESPONSE when the
                text is not a JSON object and on_parse_failure is FAIL.
        """
        response = await self.call(prompt, image_base64, model, temperature)
        data = self._decode(response.content)
        if data is None:
            return self._parse_failure(
                response.content,
                ListingContent.class_for(platform)(
                    title=description_text[:100],
                    description=response.content,
                ),
            )
        return ListingContent.from_dict(data, platform)

    async def translate_listing(
        self,
        prompt: BuiltPrompt,
        content: ListingContent,
        model: Optional[str] = None,
        temperature: float = 0.3,
    ) -> ListingContent:
        """
        Translate a listing and decode it.

        The fallback for unparseable text is the source listing unchanged.

        Raises:
            ProviderError: As for generate_listing().
        """
        response = await self.call(prompt, None, model, temperature)
        data = self._decode(response.content)
        if data is None:
            return self._parse_failure(response.content, content)
        return ListingContent.from_dict(data, content.platform)

    def _decode(self, text: str) -> Optional[Dict[str, Any]]:
        """Strict JSON decode; None when the text is not a JSON object."""
        try:
            data = json.loads(strip_code_fence(text))
        except json.JSONDecodeError as e:
            logger.warning(f"{self.name} response is not valid JSON: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(
                f"{self.name} response is JSON {type(data).__name__}, expected object"
            )
            return None
        return data

    def _parse_failure(self, raw_text: str, fallback: ListingContent) -> ListingContent:
        if self.on_parse_failure is ParseFailurePolicy.FAIL:
            raise ProviderError(
                f"{self.name} returned malformed JSON",
                kind=ErrorKind.MALFORMED_RESPONSE,
                provider=self.name,
                raw_text=raw_text,
            )
        logger.warning(f"{self.name} JSON parsing failed, returning fallback listing")
        return fallback

    async def aclose(self) -> None:
        """Release network resources held by the provider."""
        pass

    @staticmethod
    def mask_key(api_key: str) -> str:
        """Mask an API key for logging."""
        return f"{api_key[:8]}...{api_key[-4:]}" if len(api_key) > 12 else "***"
