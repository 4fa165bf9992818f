"""
Pytest configuration and fixtures.
"""

from typing import Any, Dict, List, Optional

import pytest

from listing_gateway.llm.llm_gateway import (
    GatewayConfig,
    LLMGateway,
    ProviderConfig,
    TerminalFailureMode,
)
from listing_gateway.llm.providers.base_provider import ParseFailurePolicy
from listing_gateway.models.listing import TaskKind
from tests.utils.test_helpers import RecordingSleep, ScriptedProvider


@pytest.fixture
def sample_listing_data() -> Dict[str, Any]:
    """Well-formed Amazon listing as returned by a provider."""
    return {
        "title": "Ceramic Coffee Mug 350ml, Matte Black",
        "description": "<p>Stoneware mug with a matte glaze.</p>",
        "bulletPoints": [
            "350ml capacity",
            "Dishwasher safe",
            "Matte glaze finish",
            "Comfortable handle",
            "Gift box included",
        ],
        "keywords": ["coffee mug", "ceramic mug"],
        "category": ["Home & Kitchen", "Mugs"],
        "itemSpecifics": {"Brand": "Acme", "Material": "Ceramic"},
    }


@pytest.fixture
def sample_ebay_data(sample_listing_data) -> Dict[str, Any]:
    """eBay listing with tips and a markdown-table itemSpecifics."""
    data = dict(sample_listing_data)
    data["category"] = "Home & Garden > Kitchen > Mugs"
    data["itemSpecifics"] = (
        "| Name | Value |\n| --- | --- |\n| Brand | Acme |\n| MPN | MUG-350 |"
    )
    data["tips"] = ["Photograph the mug on a neutral background"]
    return data


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def gateway_config() -> GatewayConfig:
    """Gateway config with fake credentials for both providers."""
    return GatewayConfig(
        providers={
            "openai": ProviderConfig(
                name="openai", api_key="sk-test-0000000000", default_model="gpt-4o"
            ),
            "gemini": ProviderConfig(
                name="gemini",
                api_key="AIza-test-0000000000",
                default_model="gemini-1.5-pro-latest",
            ),
        },
        max_retries=3,
        base_delay_ms=1000,
        timeout_seconds=5.0,
    )


@pytest.fixture
def make_gateway(gateway_config, recording_sleep):
    """Factory building a gateway around a ScriptedProvider.

    Returns (gateway, provider).
    """

    def _make(
        outcomes: List[Any],
        provider_name: str = "openai",
        on_parse_failure: ParseFailurePolicy = ParseFailurePolicy.FALLBACK,
        terminal_failure: Optional[Dict[TaskKind, TerminalFailureMode]] = None,
        max_retries: int = 3,
    ):
        provider = ScriptedProvider(
            outcomes, name=provider_name, on_parse_failure=on_parse_failure
        )
        config = GatewayConfig(
            providers=gateway_config.providers,
            max_retries=max_retries,
            base_delay_ms=gateway_config.base_delay_ms,
            timeout_seconds=gateway_config.timeout_seconds,
            terminal_failure=terminal_failure
            or {
                TaskKind.GENERATE: TerminalFailureMode.PAYLOAD,
                TaskKind.TRANSLATE: TerminalFailureMode.PAYLOAD,
            },
        )
        gateway = LLMGateway(
            config, providers={provider_name: provider}, sleep=recording_sleep
        )
        return gateway, provider

    return _make


@pytest.fixture
def config_file(tmp_path):
    """Write a YAML config under tmp_path/config and return its path."""

    def _write(content: str):
        config_dir = tmp_path / "config"
        config_dir.mkdir(exist_ok=True)
        path = config_dir / "gateway_config.yaml"
        path.write_text(content, encoding="utf-8")
        return path

    return _write
