"""
OpenAI LLM provider implementation for text and vision models.

Implements the BaseLLMProvider interface on top of the async OpenAI client.
Supports text-only and image-based chat completions with JSON output mode.

Example:
    >>> provider = OpenAIProvider(api_key="sk-proj-...", timeout=30.0)
    >>> response = await provider.call(prompt, image_base64=None, model="gpt-4o")

Note:
    SDK-level retries are disabled; the gateway's backoff loop owns retrying.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from ...utils.error_handlers import ErrorKind, ProviderError, kind_for_status
from ..prompt_library import BuiltPrompt
from .base_provider import BaseLLMProvider, ParseFailurePolicy, ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI API provider for listing generation and translation.

    Attributes:
        api_key: OpenAI API authentication key.
        base_url: Optional custom API endpoint URL.
        organization: Optional organization ID.
    """

    name = "openai"

    DEFAULT_MODEL = "gpt-4o"

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_MODEL,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
        organization: Optional[str] = None,
        on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK,
        json_mode: bool = True,
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        """
        Initialize OpenAI provider with credentials and configuration.

        Args:
            api_key: OpenAI API key (format: 'sk-...' or 'sk-proj-...').
            default_model: Model used when a request names none.
            base_url: Optional custom base URL for Azure OpenAI or proxies.
            timeout: Per-call timeout in seconds.
            organization: Optional organization ID.
            on_parse_failure: Policy for non-JSON model output.
            json_mode: Request response_format json_object.
            client: Optional preconfigured AsyncOpenAI client.

        Raises:
            ValueError: If api_key is empty.
        """
        if not api_key or not api_key.strip():
            raise ValueError("api_key cannot be empty")

        super().__init__(
            default_model=default_model,
            timeout=timeout,
            on_parse_failure=on_parse_failure,
            json_mode=json_mode,
        )

        if not api_key.startswith("sk-"):
            logger.warning("API key does not match expected format (sk-...)")

        self.api_key: str = api_key
        self.base_url: Optional[str] = base_url
        self.organization: Optional[str] = organization
        self._client: Optional[AsyncOpenAI] = client

        logger.info(f"OpenAI provider initialized (key: {self.mask_key(api_key)})")

    def _get_client(self) -> AsyncOpenAI:
        """
        Lazy initialization of the async OpenAI client.

        Returns:
            AsyncOpenAI: Configured client, cached after the first call.
        """
        if self._client is None:
            client_kwargs: Dict[str, Any] = {
                "api_key": self.api_key,
                "timeout": self.timeout,
                "max_retries": 0,
            }
            if self.base_url:
                client_kwargs["base_url"] = self.base_url
            if self.organization:
                client_kwargs["organization"] = self.organization

            self._client = AsyncOpenAI(**client_kwargs)
            logger.debug("OpenAI client initialized successfully")

        return self._client

    async def _request(
        self,
        prompt: BuiltPrompt,
        image_base64: Optional[str],
        model: str,
        temperature: float,
    ) -> ProviderResponse:
        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": self._build_messages(prompt, image_base64),
            "temperature": temperature,
        }
        if self.json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        logger.debug(
            f"OpenAI API call: model={model}, temperature={temperature}, "
            f"image={'yes' if image_base64 else 'no'}"
        )

        try:
            response = await self._get_client().chat.completions.create(**kwargs)
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise ProviderError(
                f"OpenAI connection error: {e}",
                kind=ErrorKind.TRANSIENT,
                provider=self.name,
                original_error=e,
            ) from e
        except openai.APIStatusError as e:
            raise ProviderError(
                f"OpenAI API error {e.status_code}: {e.message}",
                kind=kind_for_status(e.status_code),
                provider=self.name,
                status_code=e.status_code,
                original_error=e,
            ) from e

        if not response.choices:
            raise ProviderError(
                "OpenAI returned empty choices list",
                kind=ErrorKind.EMPTY_RESPONSE,
                provider=self.name,
            )

        choice = response.choices[0]
        usage = getattr(response, "usage", None)
        tokens_used = TokenUsage(
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            image_count=1 if image_base64 else 0,
        )

        logger.info(
            f"OpenAI API success: {tokens_used.input_tokens} input, "
            f"{tokens_used.output_tokens} output tokens"
        )

        return ProviderResponse(
            content=choice.message.content or "",
            model_used=model,
            provider=self.name,
            tokens_used=tokens_used,
            finish_reason=choice.finish_reason,
        )

    def _build_messages(
        self, prompt: BuiltPrompt, image_base64: Optional[str]
    ) -> List[Dict[str, Any]]:
        """
        Build OpenAI chat message format.

        Args:
            prompt: System and user prompt.
            image_base64: Optional base64 JPEG appended to the user message.

        Returns:
            List of message dictionaries.
        """
        user_content: List[Dict[str, Any]] = [{"type": "text", "text": prompt.user}]
        if image_base64:
            user_content.append(
                {
                    "type": "image_url",
                    "image_url": {"url": f"data:image/jpeg;base64,{image_base64}"},
                }
            )

        return [
            {"role": "system", "content": prompt.system},
            {"role": "user", "content": user_content},
        ]

    async def aclose(self) -> None:
        """Close the OpenAI client."""
        if self._client is not None:
            try:
                await self._client.close()
                logger.debug("OpenAI client closed successfully")
            except Exception as e:
                logger.warning(f"Error closing OpenAI client: {e}")
            finally:
                self._client = None
