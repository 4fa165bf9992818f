"""
Listing generation and translation endpoints.

Both endpoints always give the client a usable listing: the result on
success, or ``fallbackData`` next to the error on failure.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...llm.llm_gateway import LLMGateway, build_error_payload
from ...models.listing import (
    GenerationRequest,
    ListingContent,
    Platform,
    ProviderName,
    TranslationRequest,
)
from ...utils.config_loader import SystemConfig
from ...utils.error_handlers import ListingGatewayError, ListingGenerationError
from ...utils.image_utils import encode_image_file
from ..dependencies import get_config, get_gateway

logger = logging.getLogger(__name__)

router = APIRouter(tags=["AI Listing Generator"])


class GenerateBody(BaseModel):
    text: Optional[str] = None
    platform: str = "amazon"
    imagePath: Optional[str] = None
    model: str = "openai"
    modelVersion: Optional[str] = None


class TranslateBody(BaseModel):
    content: Optional[Dict[str, Any]] = None
    targetLanguage: Optional[str] = None
    model: str = "openai"
    modelVersion: Optional[str] = None


def _bad_request(message: str) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": message})


def _failure(message: str, error: Exception, fallback: Dict[str, Any]) -> JSONResponse:
    if isinstance(error, ListingGenerationError) and error.fallback_data is not None:
        fallback = error.fallback_data
    return JSONResponse(
        status_code=500,
        content={"error": message, "details": str(error), "fallbackData": fallback},
    )


def _read_upload(image_path: Optional[str], uploads_dir: str) -> Optional[str]:
    """Base64 of an uploaded image; paths outside uploads_dir are ignored."""
    if not image_path:
        return None
    root = Path(uploads_dir).resolve()
    candidate = Path(image_path)
    if not candidate.is_absolute():
        # Upload responses may be relative to the working directory or to uploads_dir
        candidate = candidate if candidate.exists() else root / candidate
    candidate = candidate.resolve()
    if not candidate.is_relative_to(root):
        logger.warning(f"Ignoring image outside uploads directory: {image_path}")
        return None
    return encode_image_file(candidate)


@router.post("/generate")
async def generate_listing(
    body: GenerateBody,
    gateway: LLMGateway = Depends(get_gateway),
    config: SystemConfig = Depends(get_config),
):
    if not body.text and not body.imagePath:
        return _bad_request("Missing text or image content")

    try:
        platform = Platform.parse(body.platform)
        provider = ProviderName.parse(body.model)
    except ValueError as e:
        return _bad_request(str(e))

    image_base64 = _read_upload(body.imagePath, config.storage["uploads_dir"])
    if body.imagePath and image_base64 is None:
        logger.warning(f"Image could not be read, continuing with text only: {body.imagePath}")

    request = GenerationRequest(
        description_text=body.text or "",
        platform=platform,
        provider=provider,
        image_base64=image_base64,
        model_version=body.modelVersion,
    )
    logger.info(f"Generate request: platform={platform.value}, provider={provider.value}")

    try:
        listing = await gateway.generate(request)
    except ListingGatewayError as e:
        logger.error(f"Generation failed: {e}")
        return _failure("Content generation failed", e, build_error_payload(platform).to_dict())

    return listing.to_dict()


@router.post("/translate")
async def translate_listing(
    body: TranslateBody,
    gateway: LLMGateway = Depends(get_gateway),
):
    target_language = (body.targetLanguage or "").strip()
    if not body.content or not target_language:
        return _bad_request("Missing content or target language")

    try:
        provider = ProviderName.parse(body.model)
        content = ListingContent.from_dict(body.content)
    except ValueError as e:
        return _bad_request(str(e))

    request = TranslationRequest(
        content=content,
        target_language=target_language,
        provider=provider,
        model_version=body.modelVersion,
    )
    logger.info(
        f"Translate request: language={target_language}, provider={provider.value}"
    )

    try:
        listing = await gateway.translate(request)
    except ListingGatewayError as e:
        logger.error(f"Translation failed: {e}")
        return _failure("Translation failed", e, body.content)

    return listing.to_dict()
