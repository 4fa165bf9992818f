"""Configuration loading and validation for the listing gateway.

This module loads gateway configuration from a YAML file merged over
built-in defaults, reads provider API keys from the environment (after
loading a .env file), resolves relative storage paths and validates the
result.

Typical usage example:
    config = Config.load()
    errors = Config.validate(config)
    if errors:
        raise ConfigurationError(f"Configuration invalid: {errors}")
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from ..llm.llm_gateway import (
    GatewayConfig,
    ProviderConfig,
    TerminalFailureMode,
)
from ..llm.providers.base_provider import ParseFailurePolicy
from ..models.listing import ProviderName, TaskKind
from .error_handlers import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "LISTING_GATEWAY_CONFIG"
DEFAULT_CONFIG_PATH = "config/gateway_config.yaml"

DEFAULT_CONFIG: Dict[str, Any] = {
    "gateway": {
        "max_retries": 3,
        "base_delay_ms": 1000,
        "timeout_seconds": 30.0,
        "terminal_failure": {"generate": "payload", "translate": "payload"},
    },
    "providers": {
        "openai": {
            "api_key_env": "OPENAI_API_KEY",
            "default_model": "gpt-4o",
            "base_url": None,
            "on_parse_failure": "fallback",
            "json_mode": True,
        },
        "gemini": {
            "api_key_env": "GOOGLE_GEMINI_API_KEY",
            "default_model": "gemini-1.5-pro-latest",
            "on_parse_failure": "fallback",
            "json_mode": True,
        },
    },
    "prompts": {"prompts_dir": None},
    "storage": {"records_dir": "records", "uploads_dir": "uploads"},
    "server": {"host": "0.0.0.0", "port": 8090},
    "logging": {"level": "INFO"},
}


def strip_quotes(value: Optional[str]) -> str:
    """Strip whitespace and one pair of surrounding quotes from an env value."""
    if not value:
        return ""
    value = value.strip()
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ("'", '"'):
        value = value[1:-1].strip()
    return value


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class SystemConfig:
    """Container for system configuration parameters.

    Attributes:
        gateway: Immutable GatewayConfig built from the gateway and
            providers sections.
        providers: Raw provider sections (api_key_env, default_model, ...).
        prompts: Prompt library settings (prompts_dir).
        storage: Absolute records_dir and uploads_dir.
        server: host and port for the HTTP server.
        logging: Logging configuration (level).
        source: Path of the YAML file, or None when defaults were used.
    """

    def __init__(
        self,
        gateway: GatewayConfig,
        source: Optional[Path] = None,
        **config_dict: Dict[str, Any],
    ) -> None:
        required_keys = ["providers", "prompts", "storage", "server", "logging"]
        missing_keys = [key for key in required_keys if key not in config_dict]
        if missing_keys:
            raise KeyError(f"Missing required configuration sections: {missing_keys}")

        self.gateway = gateway
        self.source = source
        self.providers: Dict[str, Dict[str, Any]] = config_dict["providers"]
        self.prompts: Dict[str, Any] = config_dict["prompts"]
        self.storage: Dict[str, str] = config_dict["storage"]
        self.server: Dict[str, Any] = config_dict["server"]
        self.logging: Dict[str, Any] = config_dict["logging"]


class Config:
    """Static utility class for loading and validating configuration files."""

    # Relative values are resolved against the project root
    _RELATIVE_PATH_KEYS = [
        "storage.records_dir",
        "storage.uploads_dir",
        "prompts.prompts_dir",
    ]

    @staticmethod
    def _resolve_nested_path(
        config_dict: Dict[str, Any], key_path: str, project_root: Path
    ) -> None:
        """Resolve a dot-separated config path to an absolute path in-place.

        None values are left alone.
        """
        keys = key_path.split(".")
        current = config_dict
        for key in keys[:-1]:
            current = current[key]

        final_key = keys[-1]
        value = current.get(final_key)
        if value is None:
            return
        path = Path(str(value)).expanduser()
        current[final_key] = str(path if path.is_absolute() else project_root / path)

    @staticmethod
    def load(config_path: Optional[str] = None) -> SystemConfig:
        """Load system configuration.

        The path is taken from config_path, then the LISTING_GATEWAY_CONFIG
        environment variable, then config/gateway_config.yaml under the
        working directory. A missing default file means built-in defaults;
        a missing explicit file is an error.

        Args:
            config_path: Optional path to the YAML file.

        Returns:
            SystemConfig with resolved paths and provider credentials.

        Raises:
            FileNotFoundError: If an explicitly named file does not exist.
            yaml.YAMLError: If the file is not valid YAML.
            ValueError: If the file does not contain a YAML dictionary.
            ConfigurationError: If a value is out of range or not allowed.
        """
        load_dotenv()

        explicit = config_path or os.environ.get(CONFIG_ENV_VAR)
        config_file_path = Path(explicit or DEFAULT_CONFIG_PATH).expanduser()

        user_config: Dict[str, Any] = {}
        source: Optional[Path] = None
        if config_file_path.exists():
            try:
                with open(config_file_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise yaml.YAMLError(
                    f"Failed to parse configuration file: {config_file_path}"
                ) from e
            if not isinstance(user_config, dict):
                raise ValueError("Configuration file must contain a YAML dictionary")
            source = config_file_path.resolve()
            logger.info(f"Loaded configuration from {source}")
        elif explicit:
            raise FileNotFoundError(f"Configuration file not found: {config_file_path}")
        else:
            logger.info("No configuration file found, using built-in defaults")

        config_dict = _deep_merge(DEFAULT_CONFIG, user_config)

        # Relative paths resolve against the project root (parent of config/)
        if source is None:
            project_root = Path.cwd()
        elif source.parent.name == "config":
            project_root = source.parent.parent
        else:
            project_root = source.parent
        for path_key in Config._RELATIVE_PATH_KEYS:
            Config._resolve_nested_path(config_dict, path_key, project_root)

        if os.environ.get("PORT"):
            config_dict["server"]["port"] = os.environ["PORT"]
        try:
            config_dict["server"]["port"] = int(config_dict["server"]["port"])
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid server port: {config_dict['server']['port']}",
                config_key="server.port",
                original_error=e,
            ) from e

        gateway = Config.build_gateway_config(config_dict)
        # The raw section is superseded by the immutable GatewayConfig
        config_dict.pop("gateway", None)
        return SystemConfig(gateway=gateway, source=source, **config_dict)

    @staticmethod
    def build_gateway_config(config_dict: Dict[str, Any]) -> GatewayConfig:
        """Build the immutable GatewayConfig from merged configuration.

        Raises:
            ConfigurationError: On unknown providers, invalid enum values or
                non-positive limits.
        """
        section = config_dict.get("gateway", {})

        try:
            max_retries = int(section.get("max_retries", 3))
            base_delay_ms = int(section.get("base_delay_ms", 1000))
            timeout_seconds = float(section.get("timeout_seconds", 30.0))
        except (TypeError, ValueError) as e:
            raise ConfigurationError(
                f"Invalid gateway limits: {e}", config_key="gateway", original_error=e
            ) from e

        if max_retries < 0:
            raise ConfigurationError(
                "max_retries must be non-negative", config_key="gateway.max_retries"
            )
        if base_delay_ms < 0:
            raise ConfigurationError(
                "base_delay_ms must be non-negative", config_key="gateway.base_delay_ms"
            )
        if timeout_seconds <= 0:
            raise ConfigurationError(
                "timeout_seconds must be positive", config_key="gateway.timeout_seconds"
            )

        terminal_failure = {}
        for task in TaskKind:
            value = section.get("terminal_failure", {}).get(task.value, "payload")
            terminal_failure[task] = Config._parse_enum(
                TerminalFailureMode, value, f"gateway.terminal_failure.{task.value}"
            )

        providers: Dict[str, ProviderConfig] = {}
        for name, provider_section in (config_dict.get("providers") or {}).items():
            try:
                provider_name = ProviderName.parse(name).value
            except ValueError as e:
                raise ConfigurationError(
                    str(e), config_key=f"providers.{name}", original_error=e
                ) from e

            provider_section = provider_section or {}
            api_key_env = provider_section.get("api_key_env") or ""
            timeout = provider_section.get("timeout_seconds")
            providers[provider_name] = ProviderConfig(
                name=provider_name,
                api_key=strip_quotes(os.environ.get(api_key_env)) if api_key_env else "",
                default_model=provider_section.get("default_model")
                or DEFAULT_CONFIG["providers"][provider_name]["default_model"],
                base_url=provider_section.get("base_url") or None,
                timeout=float(timeout) if timeout else None,
                on_parse_failure=Config._parse_enum(
                    ParseFailurePolicy,
                    provider_section.get("on_parse_failure", "fallback"),
                    f"providers.{provider_name}.on_parse_failure",
                ),
                json_mode=bool(provider_section.get("json_mode", True)),
            )

        return GatewayConfig(
            providers=providers,
            max_retries=max_retries,
            base_delay_ms=base_delay_ms,
            timeout_seconds=timeout_seconds,
            terminal_failure=terminal_failure,
        )

    @staticmethod
    def _parse_enum(enum_cls: Any, value: Any, config_key: str) -> Any:
        try:
            return enum_cls(str(value).strip().lower())
        except ValueError as e:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ConfigurationError(
                f"Invalid value {value!r} for {config_key} (allowed: {allowed})",
                config_key=config_key,
                original_error=e,
            ) from e

    @staticmethod
    def validate(config: SystemConfig) -> List[str]:
        """Check credentials and storage directories.

        Args:
            config: SystemConfig object to validate.

        Returns:
            List of error messages. Empty list if the configuration is usable.
        """
        errors: List[str] = []

        for name, provider in config.gateway.providers.items():
            if not provider.api_key:
                api_key_env = config.providers.get(name, {}).get("api_key_env")
                errors.append(f"API key for {name} is not set (env: {api_key_env})")
        if not config.gateway.providers:
            errors.append("No providers configured")

        for key in ("records_dir", "uploads_dir"):
            path_obj = Path(config.storage[key])
            if path_obj.exists():
                if not path_obj.is_dir():
                    errors.append(
                        f"Expected directory for storage.{key}, but found file: {path_obj}"
                    )
                elif not os.access(path_obj, os.W_OK):
                    errors.append(f"Directory not writable for storage.{key}: {path_obj}")
            else:
                parent = Path(path_obj).parent
                while not parent.exists() and parent != parent.parent:
                    parent = parent.parent
                if not os.access(parent, os.W_OK):
                    errors.append(f"Cannot create storage.{key}: {path_obj}")

        prompts_dir = config.prompts.get("prompts_dir")
        if prompts_dir and not Path(prompts_dir).is_dir():
            errors.append(f"Path not found for prompts.prompts_dir: {prompts_dir}")

        return errors
