"""HTTP routers for the listing gateway."""

from . import ai, records, upload

__all__ = ["ai", "records", "upload"]
