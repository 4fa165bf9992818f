"""Image upload endpoint."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ...utils.config_loader import SystemConfig
from ...utils.image_utils import save_upload
from ..dependencies import get_config

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/upload", tags=["Image Upload"])


@router.post("")
async def upload_image(
    image: Optional[UploadFile] = File(None),
    config: SystemConfig = Depends(get_config),
):
    if image is None:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    file_content = await image.read()
    if not file_content:
        return JSONResponse(status_code=400, content={"error": "No file uploaded"})

    try:
        # Pillow work is CPU-bound
        path = await run_in_threadpool(
            save_upload, file_content, image.filename, config.storage["uploads_dir"]
        )
    except ValueError as e:
        logger.warning(f"Rejected upload {image.filename}: {e}")
        return JSONResponse(
            status_code=400, content={"error": "File is not a valid image", "details": str(e)}
        )

    return {"success": True, "message": "File uploaded", "path": str(path)}
