"""
Unit tests for configuration loading and validation.
"""

from pathlib import Path

import pytest
import yaml

from listing_gateway.llm.llm_gateway import TerminalFailureMode
from listing_gateway.llm.providers.base_provider import ParseFailurePolicy
from listing_gateway.models.listing import TaskKind
from listing_gateway.utils.config_loader import Config, strip_quotes
from listing_gateway.utils.error_handlers import ConfigurationError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Isolate each test from the real environment and working directory."""
    for name in ("LISTING_GATEWAY_CONFIG", "OPENAI_API_KEY", "GOOGLE_GEMINI_API_KEY", "PORT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoad:
    """Test Config.load."""

    def test_defaults_without_file(self, tmp_path):
        """Test built-in defaults when no configuration file exists."""
        config = Config.load()

        assert config.source is None
        assert config.gateway.max_retries == 3
        assert config.gateway.base_delay_ms == 1000
        assert config.gateway.providers["openai"].default_model == "gpt-4o"
        assert config.gateway.providers["gemini"].default_model == "gemini-1.5-pro-latest"
        assert config.gateway.terminal_failure[TaskKind.GENERATE] is TerminalFailureMode.PAYLOAD
        assert Path(config.storage["records_dir"]).resolve() == (tmp_path / "records").resolve()
        assert config.server["port"] == 8090

    def test_yaml_overrides(self, config_file, tmp_path):
        """Test YAML values merge over defaults."""
        path = config_file(
            """
gateway:
  max_retries: 5
  timeout_seconds: 45
  terminal_failure:
    translate: raise
providers:
  openai:
    default_model: gpt-4o-mini
    on_parse_failure: fail
    json_mode: false
storage:
  records_dir: data/records
"""
        )

        config = Config.load(str(path))

        assert config.source == path.resolve()
        assert config.gateway.max_retries == 5
        assert config.gateway.timeout_seconds == 45.0
        assert config.gateway.terminal_failure[TaskKind.TRANSLATE] is TerminalFailureMode.RAISE
        assert config.gateway.terminal_failure[TaskKind.GENERATE] is TerminalFailureMode.PAYLOAD

        openai_config = config.gateway.providers["openai"]
        assert openai_config.default_model == "gpt-4o-mini"
        assert openai_config.on_parse_failure is ParseFailurePolicy.FAIL
        assert openai_config.json_mode is False

        # Relative to the project root, the parent of config/
        assert config.storage["records_dir"] == str(tmp_path.resolve() / "data" / "records")
        assert config.storage["uploads_dir"] == str(tmp_path.resolve() / "uploads")

    def test_path_from_environment(self, config_file, monkeypatch):
        path = config_file("gateway:\n  max_retries: 1\n")
        monkeypatch.setenv("LISTING_GATEWAY_CONFIG", str(path))
        assert Config.load().gateway.max_retries == 1

    def test_default_file_in_working_directory(self, config_file):
        config_file("gateway:\n  base_delay_ms: 10\n")
        assert Config.load().gateway.base_delay_ms == 10

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            Config.load(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, config_file):
        path = config_file("gateway: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            Config.load(str(path))

    def test_non_mapping_yaml(self, config_file):
        path = config_file("- just\n- a list\n")
        with pytest.raises(ValueError):
            Config.load(str(path))

    def test_invalid_enum(self, config_file):
        path = config_file("providers:\n  gemini:\n    on_parse_failure: ignore\n")
        with pytest.raises(ConfigurationError) as exc_info:
            Config.load(str(path))
        assert exc_info.value.config_key == "providers.gemini.on_parse_failure"

    def test_negative_retries(self, config_file):
        path = config_file("gateway:\n  max_retries: -1\n")
        with pytest.raises(ConfigurationError):
            Config.load(str(path))

    def test_unknown_provider(self, config_file):
        path = config_file("providers:\n  claude:\n    api_key_env: ANTHROPIC_API_KEY\n")
        with pytest.raises(ConfigurationError):
            Config.load(str(path))

    def test_api_keys_quote_stripped(self, monkeypatch):
        """Test keys wrapped in quotes in the environment are unwrapped."""
        monkeypatch.setenv("OPENAI_API_KEY", '"sk-proj-abc123"')
        monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "'AIza-xyz'")

        config = Config.load()

        assert config.gateway.providers["openai"].api_key == "sk-proj-abc123"
        assert config.gateway.providers["gemini"].api_key == "AIza-xyz"

    def test_provider_timeout(self, config_file):
        path = config_file("providers:\n  gemini:\n    timeout_seconds: 60\n")
        assert Config.load(str(path)).gateway.providers["gemini"].timeout == 60.0

    def test_port_from_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9000")
        assert Config.load().server["port"] == 9000

    def test_invalid_port(self, config_file):
        path = config_file("server:\n  port: http\n")
        with pytest.raises(ConfigurationError):
            Config.load(str(path))


class TestValidate:
    """Test Config.validate."""

    def test_missing_keys_reported(self):
        errors = Config.validate(Config.load())
        assert any("openai" in error and "OPENAI_API_KEY" in error for error in errors)
        assert any("gemini" in error for error in errors)

    def test_valid_configuration(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "AIza-test")
        assert Config.validate(Config.load()) == []

    def test_storage_path_is_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "AIza-test")
        (tmp_path / "records").write_text("not a directory")

        errors = Config.validate(Config.load())

        assert any("storage.records_dir" in error for error in errors)

    def test_missing_prompts_dir(self, config_file, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("GOOGLE_GEMINI_API_KEY", "AIza-test")
        path = config_file("prompts:\n  prompts_dir: prompts\n")

        errors = Config.validate(Config.load(str(path)))

        assert any("prompts.prompts_dir" in error for error in errors)


class TestStripQuotes:
    """Test environment value cleanup."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ('"sk-abc"', "sk-abc"),
            ("'sk-abc'", "sk-abc"),
            ("  sk-abc  ", "sk-abc"),
            ('"sk-abc', '"sk-abc'),
            ("", ""),
            (None, ""),
        ],
    )
    def test_strip_quotes(self, raw, expected):
        assert strip_quotes(raw) == expected
