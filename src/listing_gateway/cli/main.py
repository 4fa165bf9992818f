"""
CLI Interface Module

Provides the command-line interface for the listing gateway: running the
HTTP server, one-off listing generation and translation, and configuration
validation.
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import uvicorn

from .. import __version__
from ..api.app import create_app
from ..llm.llm_gateway import LLMGateway
from ..llm.prompt_library import PromptLibrary
from ..models.listing import (
    GenerationRequest,
    ListingContent,
    Platform,
    ProviderName,
    TranslationRequest,
)
from ..utils.config_loader import Config, SystemConfig
from ..utils.error_handlers import ConfigurationError, ListingGenerationError
from ..utils.image_utils import encode_image_file

logger = logging.getLogger(__name__)

SEPARATOR_WIDTH = 60


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging for the CLI application.

    Application output goes to stdout, logs go to stderr.

    Args:
        log_level: Logging level as string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def load_config(args: argparse.Namespace) -> SystemConfig:
    """Load configuration and apply its log level unless --log-level was given."""
    config = Config.load(args.config)
    if not args.log_level:
        level = str(config.logging.get("level", "INFO")).upper()
        logging.getLogger().setLevel(getattr(logging, level, logging.INFO))
    return config


def build_gateway(config: SystemConfig) -> LLMGateway:
    return LLMGateway(
        config.gateway,
        prompt_library=PromptLibrary(config.prompts.get("prompts_dir")),
    )


def print_json(data: Dict[str, Any]) -> None:
    print(json.dumps(data, ensure_ascii=False, indent=2))


def handle_error(context: str, error: Exception) -> int:
    """Centralized error handling for commands.

    Returns:
        Exit code 1.
    """
    if isinstance(error, FileNotFoundError):
        logger.error(f"{context}: File not found - {error}")
    elif isinstance(error, ValueError):
        logger.error(f"{context}: Invalid value - {error}")
    elif isinstance(error, ConfigurationError):
        logger.error(f"{context}: {error}")
    else:
        logger.error(f"{context}: {error}", exc_info=True)
    return 1


def main(argv: Optional[list] = None) -> int:
    """Execute the main CLI entry point.

    Returns:
        Exit code: 0 for success, non-zero for errors.

    Example:
        $ listing-gateway serve --port 8090
        $ listing-gateway generate --text "Ceramic mug, 350ml" --platform ebay
    """
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"Listing Gateway v{__version__}")
        return 0

    setup_logging(args.log_level or "INFO")

    if args.command is None:
        parser.print_help()
        return 1

    command_map = {
        "serve": command_serve,
        "generate": command_generate,
        "translate": command_translate,
        "validate-config": command_validate_config,
    }

    try:
        return command_map[args.command](args)
    except KeyboardInterrupt:
        logger.info("Operation cancelled by user")
        return 130
    except Exception as e:
        return handle_error("Command execution failed", e)


def command_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API with uvicorn."""
    try:
        config = load_config(args)
    except Exception as e:
        return handle_error("Configuration load failed", e)

    host = args.host or config.server["host"]
    port = args.port or config.server["port"]
    logger.info(f"Starting API server on http://{host}:{port}")

    uvicorn.run(
        create_app(config),
        host=host,
        port=port,
        log_level=(args.log_level or config.logging.get("level", "INFO")).lower(),
    )
    return 0


def command_generate(args: argparse.Namespace) -> int:
    """Generate one listing and print it as JSON.

    Returns:
        Exit code: 0 on success, 1 on failure (fallback data is still printed).
    """
    try:
        config = load_config(args)
        request = GenerationRequest(
            description_text=args.text or "",
            platform=Platform.parse(args.platform),
            provider=ProviderName.parse(args.provider),
            image_base64=encode_image_file(args.image),
            model_version=args.model_version,
        )
    except Exception as e:
        return handle_error("Invalid generate request", e)

    if not request.description_text and not request.image_base64:
        logger.error("Either --text or a readable --image is required")
        return 1

    async def run() -> ListingContent:
        async with build_gateway(config) as gateway:
            return await gateway.generate(request)

    try:
        listing = asyncio.run(run())
    except ListingGenerationError as e:
        logger.error(f"Generation failed: {e}")
        if e.fallback_data:
            print_json(e.fallback_data)
        return 1
    except Exception as e:
        return handle_error("Generation failed", e)

    print_json(listing.to_dict())
    return 0


def command_translate(args: argparse.Namespace) -> int:
    """Translate a listing JSON file and print the result."""
    try:
        config = load_config(args)
        with open(Path(args.input), "r", encoding="utf-8") as f:
            data = json.load(f)
        platform = Platform.parse(args.platform) if args.platform else None
        request = TranslationRequest(
            content=ListingContent.from_dict(data, platform),
            target_language=args.lang,
            provider=ProviderName.parse(args.provider),
            model_version=args.model_version,
        )
    except Exception as e:
        return handle_error("Invalid translate request", e)

    async def run() -> ListingContent:
        async with build_gateway(config) as gateway:
            return await gateway.translate(request)

    try:
        listing = asyncio.run(run())
    except ListingGenerationError as e:
        logger.error(f"Translation failed: {e}")
        if e.fallback_data:
            print_json(e.fallback_data)
        return 1
    except Exception as e:
        return handle_error("Translation failed", e)

    print_json(listing.to_dict())
    return 0


def command_validate_config(args: argparse.Namespace) -> int:
    """Validate configuration and print any problems.

    Returns:
        Exit code: 0 if configuration is valid, 1 if errors found.
    """
    try:
        config = load_config(args)
    except Exception as e:
        return handle_error("Configuration validation failed", e)

    errors = Config.validate(config)

    print("=" * SEPARATOR_WIDTH)
    print("CONFIGURATION VALIDATION")
    print("=" * SEPARATOR_WIDTH)
    print(f"Source: {config.source or 'built-in defaults'}")
    for name, provider in config.gateway.providers.items():
        status = "configured" if provider.api_key else "missing API key"
        print(f"Provider {name}: {provider.default_model} ({status})")
    print(f"Records: {config.storage['records_dir']}")
    print(f"Uploads: {config.storage['uploads_dir']}")

    if errors:
        print(f"\nErrors ({len(errors)}):")
        for error in errors:
            print(f"  - {error}")
    else:
        print("\nConfiguration is valid")
    print("=" * SEPARATOR_WIDTH)

    return 1 if errors else 0


def setup_argument_parser() -> argparse.ArgumentParser:
    """Configure the argument parser with all CLI commands and options.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="listing-gateway",
        description="Listing Gateway - CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run the HTTP API
  %(prog)s serve --port 8090

  # Generate an eBay listing with Gemini
  %(prog)s generate --text "Vintage brass lamp" --platform ebay --provider gemini

  # Translate a saved listing to German
  %(prog)s translate --input listing.json --lang de
        """,
    )

    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument(
        "--config",
        default=None,
        help="Path to configuration file (default: $LISTING_GATEWAY_CONFIG "
        "or config/gateway_config.yaml)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: from configuration)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API server")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    generate_parser = subparsers.add_parser("generate", help="Generate a listing")
    generate_parser.add_argument("--text", default="", help="Product description text")
    generate_parser.add_argument("--image", default=None, help="Product image path")
    generate_parser.add_argument(
        "--platform", choices=[p.value for p in Platform], default="amazon"
    )
    generate_parser.add_argument(
        "--provider", choices=[p.value for p in ProviderName], default="openai"
    )
    generate_parser.add_argument("--model-version", default=None, help="Model override")

    translate_parser = subparsers.add_parser("translate", help="Translate a listing")
    translate_parser.add_argument("--input", required=True, help="Listing JSON file")
    translate_parser.add_argument("--lang", required=True, help="Target language code")
    translate_parser.add_argument(
        "--provider", choices=[p.value for p in ProviderName], default="openai"
    )
    translate_parser.add_argument(
        "--platform",
        choices=[p.value for p in Platform],
        default=None,
        help="Listing platform (default: from the file, else amazon)",
    )
    translate_parser.add_argument("--model-version", default=None, help="Model override")

    subparsers.add_parser(
        "validate-config",
        help="Validate configuration",
        description="Check provider credentials and storage directories.",
    )

    return parser


if __name__ == "__main__":
    sys.exit(main())
