"""
Test Helper Functions

Fakes for testing listing gateway components without network access.
"""

from typing import Any, Dict, List, Optional

from listing_gateway.llm.prompt_library import BuiltPrompt
from listing_gateway.llm.providers.base_provider import (
    BaseLLMProvider,
    ParseFailurePolicy,
    ProviderResponse,
)


class ScriptedProvider(BaseLLMProvider):
    """
    Provider whose remote call replays scripted outcomes.

    Each outcome is either response text or an exception to raise.
    """

    def __init__(
        self,
        outcomes: List[Any],
        name: str = "openai",
        on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK,
        timeout: float = 5.0,
    ):
        super().__init__(
            default_model="fake-model", timeout=timeout, on_parse_failure=on_parse_failure
        )
        self.name = name
        self.outcomes = list(outcomes)
        self.calls: List[Dict[str, Any]] = []
        self.closed = False

    async def _request(
        self,
        prompt: BuiltPrompt,
        image_base64: Optional[str],
        model: str,
        temperature: float,
    ) -> ProviderResponse:
        self.calls.append(
            {
                "prompt": prompt,
                "image_base64": image_base64,
                "model": model,
                "temperature": temperature,
            }
        )
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return ProviderResponse(content=outcome, model_used=model, provider=self.name)

    async def aclose(self) -> None:
        self.closed = True


class RecordingSleep:
    """Async sleep replacement that records requested delays in seconds."""

    def __init__(self):
        self.delays: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class HTTPStatusError(Exception):
    """Stand-in for an SDK error exposing an HTTP status code."""

    def __init__(self, status_code: int, message: str = "HTTP error"):
        super().__init__(f"{status_code} {message}")
        self.status_code = status_code
