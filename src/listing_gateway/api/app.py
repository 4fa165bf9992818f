"""
FastAPI application factory.

Typical usage example:
    config = Config.load()
    app = create_app(config)
    uvicorn.run(app, host=config.server["host"], port=config.server["port"])
"""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..llm.llm_gateway import LLMGateway
from ..llm.prompt_library import PromptLibrary
from ..storage.record_store import RecordStore
from ..utils.config_loader import Config, SystemConfig
from .routes import ai, records, upload

logger = logging.getLogger(__name__)


def create_app(
    config: Optional[SystemConfig] = None,
    gateway: Optional[LLMGateway] = None,
    record_store: Optional[RecordStore] = None,
) -> FastAPI:
    """
    Build the HTTP application.

    Args:
        config: Loaded configuration, defaults to Config.load().
        gateway: Prebuilt gateway, defaults to one built from config.
        record_store: Prebuilt record store, defaults to storage.records_dir.

    Returns:
        FastAPI app with all routers under /api.
    """
    config = config or Config.load()
    if gateway is None:
        gateway = LLMGateway(
            config.gateway,
            prompt_library=PromptLibrary(config.prompts.get("prompts_dir")),
        )
    record_store = record_store or RecordStore(config.storage["records_dir"])
    Path(config.storage["uploads_dir"]).mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Listing gateway {__version__} starting")
        yield
        await app.state.gateway.aclose()
        logger.info("Listing gateway stopped")

    app = FastAPI(title="Listing Gateway", version=__version__, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = config
    app.state.gateway = gateway
    app.state.record_store = record_store

    app.include_router(ai.router, prefix="/api")
    app.include_router(records.router, prefix="/api")
    app.include_router(upload.router, prefix="/api")

    @app.get("/api/health")
    def health():
        return {"status": "ok", "message": "Server is running"}

    return app
