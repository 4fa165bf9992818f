"""Saved record endpoints backed by the flat-file RecordStore."""

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse

from ...storage.record_store import RecordStore
from ...utils.error_handlers import RecordNotFoundError
from ..dependencies import get_record_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/records", tags=["Records"])


@router.get("")
def list_records(store: RecordStore = Depends(get_record_store)):
    return store.list_records()


@router.post("/save")
def save_record(
    record: Optional[Dict[str, Any]] = Body(None),
    store: RecordStore = Depends(get_record_store),
):
    if not record:
        return JSONResponse(status_code=400, content={"error": "Missing record data"})

    try:
        filename = store.save_record(record)
    except ValueError as e:
        return JSONResponse(status_code=400, content={"error": str(e)})

    return {"success": True, "message": "Record saved", "filename": filename}


@router.get("/{record_id}")
def get_record(record_id: str, store: RecordStore = Depends(get_record_store)):
    try:
        return store.get_record(record_id)
    except RecordNotFoundError:
        logger.info(f"Record not found: {record_id}")
        return JSONResponse(status_code=404, content={"error": "Record not found"})
