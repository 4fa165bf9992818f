"""
LLM Gateway - single entry point for listing generation and translation.

This module provides the façade between the HTTP layer and the provider
adapters (OpenAI, Gemini) with features including:
- Provider selection per request
- Platform-specific prompt construction
- Retry of transient failures with exponential backoff
- A uniform result shape for both success and terminal failure

Typical usage example:

    config = GatewayConfig(
        providers={
            "openai": ProviderConfig(name="openai", api_key="sk-...", default_model="gpt-4o")
        }
    )

    async with LLMGateway(config) as gateway:
        listing = await gateway.generate(
            GenerationRequest(description_text="Ceramic mug, 350ml", platform=Platform.AMAZON)
        )
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ..models.listing import (
    EbayListing,
    GenerationRequest,
    ListingContent,
    Platform,
    ProviderName,
    TaskKind,
    TranslationRequest,
)
from ..utils.error_handlers import (
    ConfigurationError,
    ErrorKind,
    ListingGenerationError,
    ProviderError,
    log_error_with_context,
)
from .backoff_policy import BackoffPolicy
from .prompt_library import PromptLibrary
from .providers.base_provider import BaseLLMProvider, ParseFailurePolicy
from .providers.google_provider import GoogleProvider
from .providers.openai_provider import OpenAIProvider

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[Any]]


class GatewayDefaults:
    """Default values for gateway operations."""

    GENERATE_TEMPERATURE: float = 0.7
    TRANSLATE_TEMPERATURE: float = 0.3
    MAX_RETRIES: int = 3
    BASE_DELAY_MS: int = 1000
    TIMEOUT_SECONDS: float = 30.0


class TerminalFailureMode(str, Enum):
    """How the gateway surfaces a failure it will not retry."""

    PAYLOAD = "payload"
    RAISE = "raise"


@dataclass(frozen=True)
class ProviderConfig:
    """Configuration for a single LLM provider.

    Attributes:
        name: Provider name ('openai', 'gemini').
        api_key: API key, already stripped of surrounding quotes.
        default_model: Model used when a request names none.
        base_url: Optional custom base URL for proxies (OpenAI only).
        timeout: Optional per-call timeout overriding the gateway default.
        on_parse_failure: FAIL or FALLBACK for non-JSON model output.
        json_mode: Ask the provider for JSON output.
    """

    name: str
    api_key: str = field(repr=False)
    default_model: str
    base_url: Optional[str] = None
    timeout: Optional[float] = None
    on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK
    json_mode: bool = True


def _default_terminal_failure() -> Dict[TaskKind, TerminalFailureMode]:
    return {
        TaskKind.GENERATE: TerminalFailureMode.PAYLOAD,
        TaskKind.TRANSLATE: TerminalFailureMode.PAYLOAD,
    }


@dataclass(frozen=True)
class GatewayConfig:
    """Configuration for gateway initialization.

    Attributes:
        providers: Provider configurations keyed by provider name.
        max_retries: Retries allowed for transient errors.
        base_delay_ms: Base delay of the exponential backoff.
        timeout_seconds: Default per-call timeout.
        terminal_failure: Per-task choice between returning the error
            payload and raising ListingGenerationError.
    """

    providers: Dict[str, ProviderConfig] = field(default_factory=dict)
    max_retries: int = GatewayDefaults.MAX_RETRIES
    base_delay_ms: int = GatewayDefaults.BASE_DELAY_MS
    timeout_seconds: float = GatewayDefaults.TIMEOUT_SECONDS
    terminal_failure: Dict[TaskKind, TerminalFailureMode] = field(
        default_factory=_default_terminal_failure
    )


class ProviderFactory:
    """Factory for creating LLM provider instances."""

    _providers: Dict[str, Callable[[ProviderConfig, float], BaseLLMProvider]] = {
        ProviderName.OPENAI.value: lambda config, timeout: OpenAIProvider(
            api_key=config.api_key,
            default_model=config.default_model,
            base_url=config.base_url,
            timeout=timeout,
            on_parse_failure=config.on_parse_failure,
            json_mode=config.json_mode,
        ),
        ProviderName.GEMINI.value: lambda config, timeout: GoogleProvider(
            api_key=config.api_key,
            default_model=config.default_model,
            timeout=timeout,
            on_parse_failure=config.on_parse_failure,
            json_mode=config.json_mode,
        ),
    }

    @classmethod
    def create(cls, config: ProviderConfig, default_timeout: float) -> BaseLLMProvider:
        """Create a provider instance from its configuration.

        Raises:
            ConfigurationError: If the provider name is unknown.
        """
        provider_key = config.name.lower()
        if provider_key not in cls._providers:
            raise ConfigurationError(
                f"Unknown provider: {config.name}. "
                f"Available: {', '.join(cls._providers.keys())}",
                config_key=f"providers.{config.name}",
            )
        return cls._providers[provider_key](config, config.timeout or default_timeout)


def build_error_payload(platform: Platform) -> ListingContent:
    """Platform-shaped listing returned when generation fails terminally."""
    listing_cls = ListingContent.class_for(platform)
    kwargs: Dict[str, Any] = {
        "title": "Generation failed - please retry",
        "description": (
            "The listing could not be generated because of a server error. "
            "Please try again later or check the server logs for details."
        ),
        "bullet_points": ["The server could not process the request"],
        "keywords": [],
        "category": [],
        "item_specifics": {},
    }
    if listing_cls is EbayListing:
        kwargs["tips"] = ["Check the provider configuration and network, then retry"]
    return listing_cls(**kwargs)


class LLMGateway:
    """Generation/translation façade over interchangeable providers.

    Each generate()/translate() call is one unit of work: the prompt is
    built, the selected provider is invoked, transient failures are retried
    sequentially under the BackoffPolicy, and terminal failures are turned
    into a well-shaped listing (returned or attached to a raised
    ListingGenerationError). Calls share nothing but the immutable
    configuration and provider clients.

    Attributes:
        config: GatewayConfig with provider settings and retry limits.
        prompt_library: PromptLibrary building the provider prompts.
        backoff_policy: Retry decision for failed calls.
    """

    def __init__(
        self,
        config: GatewayConfig,
        prompt_library: Optional[PromptLibrary] = None,
        providers: Optional[Dict[str, BaseLLMProvider]] = None,
        sleep: SleepFunc = asyncio.sleep,
    ) -> None:
        """Initialize gateway with configuration and dependencies.

        Args:
            config: Gateway configuration.
            prompt_library: Optional prompt library.
            providers: Optional prebuilt providers keyed by name; providers
                not given are built from config.
            sleep: Coroutine function used for the backoff delay.

        Raises:
            ConfigurationError: If a configured provider name is unknown.
        """
        self.config = config
        self.prompt_library = prompt_library or PromptLibrary()
        self.backoff_policy = BackoffPolicy(
            max_attempts=config.max_retries, base_delay_ms=config.base_delay_ms
        )
        self._sleep = sleep
        self._providers: Dict[str, BaseLLMProvider] = dict(providers or {})
        self._initialize_providers()

        logger.info(
            f"LLMGateway initialized with providers: {sorted(self._providers) or 'none'}"
        )

    def _initialize_providers(self) -> None:
        """Build providers that have credentials; warn about the others."""
        for name, provider_config in self.config.providers.items():
            if name in self._providers:
                continue
            if not provider_config.api_key:
                logger.warning(f"{name}: API key not configured, provider disabled")
                continue
            self._providers[name] = ProviderFactory.create(
                provider_config, self.config.timeout_seconds
            )
            logger.info(f"Initialized provider: {name}")

    def available_providers(self) -> list:
        """Names of providers ready to serve requests."""
        return sorted(self._providers)

    def _get_provider(self, name: Any) -> BaseLLMProvider:
        try:
            provider_name = ProviderName.parse(name).value
        except ValueError as e:
            raise ConfigurationError(str(e), config_key="provider") from e

        provider = self._providers.get(provider_name)
        if provider is None:
            raise ConfigurationError(
                f"Provider not available: {provider_name} (missing API key?)",
                config_key=f"providers.{provider_name}.api_key_env",
            )
        return provider

    async def generate(self, request: GenerationRequest) -> ListingContent:
        """Generate a platform-shaped listing from text and an optional image.

        Args:
            request: Generation inputs.

        Returns:
            Parsed listing, the provider's fallback listing, or the error
            payload on terminal failure.

        Raises:
            ListingGenerationError: On terminal failure when the provider
                fails on malformed JSON or the task is configured to raise.
            ConfigurationError: If the provider is unknown or disabled.
        """
        platform = Platform.parse(request.platform)
        provider = self._get_provider(request.provider)
        prompt = self.prompt_library.build_generation_prompt(
            platform, request.description_text
        )

        async def invoke() -> ListingContent:
            return await provider.generate_listing(
                prompt,
                platform,
                request.description_text,
                image_base64=request.image_base64,
                model=request.model_version,
                temperature=GatewayDefaults.GENERATE_TEMPERATURE,
            )

        return await self._run_with_retry(
            TaskKind.GENERATE, provider.name, invoke, lambda: build_error_payload(platform)
        )

    async def translate(self, request: TranslationRequest) -> ListingContent:
        """Translate a listing's values into the target language.

        Args:
            request: Translation inputs.

        Returns:
            Translated listing, or the source listing on terminal failure.

        Raises:
            ListingGenerationError: As for generate().
            ConfigurationError: If the provider is unknown or disabled.
        """
        if not request.target_language or not request.target_language.strip():
            raise ValueError("target_language cannot be empty")

        provider = self._get_provider(request.provider)
        content = request.content
        prompt = self.prompt_library.build_translation_prompt(
            content, request.target_language
        )

        async def invoke() -> ListingContent:
            return await provider.translate_listing(
                prompt,
                content,
                model=request.model_version,
                temperature=GatewayDefaults.TRANSLATE_TEMPERATURE,
            )

        return await self._run_with_retry(
            TaskKind.TRANSLATE,
            provider.name,
            invoke,
            lambda: ListingContent.from_dict(content.to_dict(), content.platform),
        )

    async def _run_with_retry(
        self,
        task: TaskKind,
        provider_name: str,
        invoke: Callable[[], Awaitable[ListingContent]],
        fallback: Callable[[], ListingContent],
    ) -> ListingContent:
        """Invoke the provider until success or a terminal failure.

        Args:
            task: Task kind, selects the terminal failure mode.
            provider_name: Provider name for logs.
            invoke: Coroutine function making one provider call.
            fallback: Builds the listing returned on terminal failure.

        Returns:
            Listing from the provider, or fallback() on terminal failure.
        """
        state = self.backoff_policy.new_state()

        while True:
            try:
                result = await invoke()
                logger.info(
                    f"{task.value} via {provider_name} succeeded "
                    f"(attempt {state.attempt + 1})"
                )
                return result
            except ProviderError as e:
                decision = self.backoff_policy.decide(e.kind, state.attempt)
                if not decision.should_retry:
                    return self._terminal_failure(task, provider_name, e, fallback, state.attempt)

                logger.warning(
                    f"{task.value} via {provider_name} failed "
                    f"(attempt {state.attempt + 1}/{state.max_attempts + 1}): {e}. "
                    f"Retrying in {decision.delay_ms}ms"
                )
                await self._sleep(decision.delay_ms / 1000)
                state.attempt += 1

    def _terminal_failure(
        self,
        task: TaskKind,
        provider_name: str,
        error: ProviderError,
        fallback: Callable[[], ListingContent],
        attempt: int,
    ) -> ListingContent:
        log_error_with_context(
            error,
            logger,
            {
                "provider": provider_name,
                "task": task.value,
                "kind": error.kind.value,
                "attempts": attempt + 1,
            },
        )

        payload = fallback()
        mode = self.config.terminal_failure.get(task, TerminalFailureMode.PAYLOAD)
        if error.kind is ErrorKind.MALFORMED_RESPONSE or mode is TerminalFailureMode.RAISE:
            raise ListingGenerationError(
                f"{task.value} failed: {error.message}",
                fallback_data=payload.to_dict(),
                kind=error.kind,
                provider=provider_name,
                original_error=error,
            ) from error
        return payload

    async def aclose(self) -> None:
        """Close all provider connections."""
        for provider_name, provider in list(self._providers.items()):
            try:
                await provider.aclose()
                logger.debug(f"Closed provider: {provider_name}")
            except Exception as e:
                logger.exception(f"Error closing provider {provider_name}: {e}")
        self._providers.clear()

    async def __aenter__(self) -> "LLMGateway":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()
