"""
Google AI (Gemini) LLM provider implementation for text and vision models.

Implements the BaseLLMProvider interface for Gemini models through the
google-generativeai SDK. Supports text-only and image-based completions
with JSON output mode.

Example:
    >>> provider = GoogleProvider(api_key="AIza...", timeout=60.0)
    >>> response = await provider.call(prompt, model="gemini-1.5-pro-latest")

Note:
    google-generativeai keeps its API key in process-wide SDK state. The key
    is configured once, on first use, and never changes afterwards.
"""

import base64
import binascii
import logging
import types
from typing import Any, Callable, Dict, List, Optional, Union

import google.generativeai as genai
from google.api_core import exceptions as google_exceptions

from ...utils.error_handlers import ErrorKind, ProviderError, kind_for_status
from ..prompt_library import BuiltPrompt
from .base_provider import BaseLLMProvider, ParseFailurePolicy, ProviderResponse, TokenUsage

logger = logging.getLogger(__name__)

ModelFactory = Callable[[str, str], Any]


class GoogleProvider(BaseLLMProvider):
    """
    Google AI (Gemini) API provider for listing generation and translation.

    Attributes:
        api_key: Google AI API authentication key.
    """

    name = "gemini"

    DEFAULT_MODEL = "gemini-1.5-pro-latest"

    def __init__(
        self,
        api_key: str,
        default_model: str = DEFAULT_MODEL,
        timeout: float = 60.0,
        on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK,
        json_mode: bool = True,
        model_factory: Optional[ModelFactory] = None,
    ) -> None:
        """
        Initialize Google AI provider with credentials and configuration.

        Args:
            api_key: Google AI API key (format: 'AIza...').
            default_model: Model used when a request names none.
            timeout: Per-call timeout in seconds.
            on_parse_failure: Policy for non-JSON model output.
            json_mode: Request response_mime_type application/json.
            model_factory: Optional callable (model_name, system_instruction)
                returning an object with generate_content_async().

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

        if not api_key.startswith("AIza"):
            logger.warning("API key does not match expected format (AIza...)")

        self.api_key: str = api_key
        self._model_factory: Optional[ModelFactory] = model_factory
        self._genai: Optional[types.ModuleType] = None

        logger.info(f"Google provider initialized (key: {self.mask_key(api_key)})")

    def _get_genai(self) -> types.ModuleType:
        """
        Lazy configuration of the Google GenerativeAI module.

        Returns:
            google.generativeai module configured with api_key.
        """
        if self._genai is None:
            genai.configure(api_key=self.api_key)
            logger.debug("Google AI Studio configured successfully")
            self._genai = genai
        return self._genai

    def _create_model(self, model: str, system_instruction: str) -> Any:
        if self._model_factory is not None:
            return self._model_factory(model, system_instruction)
        return self._get_genai().GenerativeModel(
            model_name=model, system_instruction=system_instruction
        )

    async def _request(
        self,
        prompt: BuiltPrompt,
        image_base64: Optional[str],
        model: str,
        temperature: float,
    ) -> ProviderResponse:
        model_instance = self._create_model(model, prompt.system)

        generation_config: Dict[str, Any] = {"temperature": temperature}
        if self.json_mode:
            generation_config["response_mime_type"] = "application/json"

        logger.debug(
            f"Google AI API call: model={model}, temperature={temperature}, "
            f"image={'yes' if image_base64 else 'no'}"
        )

        try:
            response = await model_instance.generate_content_async(
                self._build_content(prompt, image_base64),
                generation_config=generation_config,
                request_options={"timeout": self.timeout},
            )
        except google_exceptions.RetryError as e:
            raise ProviderError(
                f"Gemini retry deadline exceeded: {e}",
                kind=ErrorKind.TRANSIENT,
                provider=self.name,
                original_error=e,
            ) from e
        except google_exceptions.GoogleAPICallError as e:
            status = int(e.code) if e.code is not None else None
            raise ProviderError(
                f"Gemini API error {status}: {e.message}",
                kind=kind_for_status(status) if status else ErrorKind.TRANSIENT,
                provider=self.name,
                status_code=status,
                original_error=e,
            ) from e

        try:
            content_text = response.text
        except ValueError as e:
            # Blocked or candidate-less responses have no text accessor
            raise ProviderError(
                f"Gemini returned no text: {e}",
                kind=ErrorKind.EMPTY_RESPONSE,
                provider=self.name,
                original_error=e,
            ) from e

        usage = getattr(response, "usage_metadata", None)
        tokens_used = TokenUsage(
            input_tokens=getattr(usage, "prompt_token_count", 0) or 0,
            output_tokens=getattr(usage, "candidates_token_count", 0) or 0,
            image_count=1 if image_base64 else 0,
        )

        finish_reason = "stop"
        candidates = getattr(response, "candidates", None)
        if candidates and hasattr(candidates[0], "finish_reason"):
            finish_reason = str(candidates[0].finish_reason).lower()

        logger.info(
            f"Google AI API success: {tokens_used.input_tokens} input, "
            f"{tokens_used.output_tokens} output tokens, finish_reason={finish_reason}"
        )

        return ProviderResponse(
            content=content_text or "",
            model_used=model,
            provider=self.name,
            tokens_used=tokens_used,
            finish_reason=finish_reason,
        )

    def _build_content(
        self, prompt: BuiltPrompt, image_base64: Optional[str]
    ) -> List[Union[str, Dict[str, Any]]]:
        """
        Build Gemini content parts.

        Args:
            prompt: System and user prompt; the system part is passed as
                the model's system instruction.
            image_base64: Optional base64 JPEG added as an inline blob.

        Returns:
            List of content parts.

        Raises:
            ProviderError: PERMANENT if the image is not valid base64.
        """
        parts: List[Union[str, Dict[str, Any]]] = [prompt.user]
        if image_base64:
            try:
                image_bytes = base64.b64decode(image_base64, validate=True)
            except (binascii.Error, ValueError) as e:
                raise ProviderError(
                    f"Image is not valid base64: {e}",
                    kind=ErrorKind.PERMANENT,
                    provider=self.name,
                    original_error=e,
                ) from e
            parts.append("Product Image:")
            parts.append({"mime_type": "image/jpeg", "data": image_bytes})
        return parts
