"""FastAPI dependencies resolving shared services from app.state."""

from fastapi import Request

from ..llm.llm_gateway import LLMGateway
from ..storage.record_store import RecordStore
from ..utils.config_loader import SystemConfig


def get_gateway(request: Request) -> LLMGateway:
    return request.app.state.gateway


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.record_store


def get_config(request: Request) -> SystemConfig:
    return request.app.state.config
