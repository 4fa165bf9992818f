"""Record persistence for the listing gateway."""

from .record_store import RecordStore

__all__ = ["RecordStore"]
