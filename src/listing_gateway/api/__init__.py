"""HTTP API for the listing gateway."""

from .app import create_app

__all__ = ["create_app"]
