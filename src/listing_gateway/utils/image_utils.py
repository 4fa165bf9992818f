"""
Image utilities for the listing gateway.

Provides functions for downscaling uploaded product photos and encoding
them for provider requests.
"""

import base64
import io
import logging
import re
import time
from pathlib import Path
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

logger = logging.getLogger(__name__)

MAX_EDGE = 1024
JPEG_QUALITY = 85

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def resize_image(
    image_bytes: bytes, max_edge: int = MAX_EDGE, quality: int = JPEG_QUALITY
) -> bytes:
    """
    Downscale an image so its long edge fits max_edge and re-encode as JPEG.

    Smaller images are re-encoded but never enlarged.

    Args:
        image_bytes: Encoded image (any format Pillow reads)
        max_edge: Maximum width or height in pixels
        quality: JPEG quality (1-95)

    Returns:
        JPEG-encoded bytes

    Raises:
        ValueError: If the bytes are not a readable image
    """
    try:
        image = Image.open(io.BytesIO(image_bytes))
        image.load()
    except (UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Invalid image: {e}") from e

    original_size = image.size
    image.thumbnail((max_edge, max_edge), Image.LANCZOS)

    # JPEG has no alpha or palette
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    logger.debug(f"Resized image {original_size} -> {image.size}, quality={quality}")
    return buffer.getvalue()


def safe_upload_name(original_name: Optional[str]) -> str:
    """
    Build a unique upload filename: '<epoch ms>-<sanitized stem>.jpg'.

    Args:
        original_name: Client-supplied filename, may be None

    Returns:
        Filename without directory components
    """
    stem = Path(original_name or "image").stem
    stem = _UNSAFE_CHARS.sub("_", stem).strip("._") or "image"
    return f"{int(time.time() * 1000)}-{stem}.jpg"


def save_upload(
    image_bytes: bytes, original_name: Optional[str], uploads_dir: Union[str, Path]
) -> Path:
    """
    Resize an uploaded image and store it under uploads_dir.

    Args:
        image_bytes: Raw uploaded bytes
        original_name: Client-supplied filename
        uploads_dir: Destination directory, created if missing

    Returns:
        Path of the stored JPEG

    Raises:
        ValueError: If the upload is not a readable image
    """
    directory = Path(uploads_dir)
    directory.mkdir(parents=True, exist_ok=True)

    target = directory / safe_upload_name(original_name)
    target.write_bytes(resize_image(image_bytes))
    logger.info(f"Stored upload: {target}")
    return target


def encode_image_file(path: Union[str, Path, None]) -> Optional[str]:
    """
    Read an image file and return it base64-encoded.

    Missing or unreadable files are logged and yield None so the request
    can continue with text only.

    Args:
        path: Image file path

    Returns:
        Base64 string, or None
    """
    if not path:
        return None

    file_path = Path(path)
    if not file_path.is_file():
        logger.warning(f"Image file not found: {file_path}")
        return None

    try:
        data = file_path.read_bytes()
    except OSError as e:
        logger.error(f"Failed to read image {file_path}: {e}")
        return None

    if not data:
        logger.warning(f"Image file is empty: {file_path}")
        return None

    return base64.b64encode(data).decode("utf-8")
