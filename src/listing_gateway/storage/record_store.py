"""
Flat-file record store for the listing gateway.

Each saved record is one pretty-printed JSON file named
``record_<timestamp>.json`` (colons in the timestamp replaced by dashes)
inside the records directory.

Typical usage example:
    store = RecordStore("./records")
    filename = store.save_record({"timestamp": "2024-05-01T10:00:00Z", ...})
    records = store.list_records()
"""

import json
import logging
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Union

from ..utils.error_handlers import RecordNotFoundError

logger = logging.getLogger(__name__)

RECORD_PREFIX = "record_"
RECORD_SUFFIX = ".json"


def utc_timestamp() -> str:
    """Current time as ISO-8601 UTC with millisecond precision and 'Z'."""
    return (
        datetime.now(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _sort_key(record: Dict[str, Any]) -> float:
    value = record.get("timestamp")
    if not isinstance(value, str):
        return float("-inf")
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return float("-inf")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp()


class RecordStore:
    """
    Stores saved listing records as JSON files.

    Attributes:
        records_dir: Directory holding the record files.
    """

    def __init__(self, records_dir: Union[str, Path]) -> None:
        self.records_dir = Path(records_dir)
        self.records_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"RecordStore initialized at {self.records_dir}")

    def list_records(self) -> List[Dict[str, Any]]:
        """
        Load every record, newest first by ``timestamp``.

        Files that are not valid JSON objects are skipped with a warning.
        """
        records: List[Dict[str, Any]] = []
        for path in self.records_dir.glob(f"*{RECORD_SUFFIX}"):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    data = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Skipping unreadable record {path.name}: {e}")
                continue
            if not isinstance(data, dict):
                logger.warning(f"Skipping record {path.name}: not a JSON object")
                continue
            records.append(data)

        records.sort(key=_sort_key, reverse=True)
        return records

    def save_record(self, record: Dict[str, Any]) -> str:
        """
        Persist a record.

        A missing ``timestamp`` is set to the current UTC time and stored in
        the record. Saving with an existing timestamp overwrites that record.

        Args:
            record: JSON-serializable mapping.

        Returns:
            The filename written.

        Raises:
            ValueError: If record is not a non-empty mapping or its
                timestamp cannot be used in a filename.
        """
        if not isinstance(record, dict) or not record:
            raise ValueError("Record data is missing")

        data = dict(record)
        timestamp = data.get("timestamp") or utc_timestamp()
        data["timestamp"] = timestamp

        record_id = str(timestamp).replace(":", "-")
        self._check_id(record_id)
        filename = f"{RECORD_PREFIX}{record_id}{RECORD_SUFFIX}"

        # Write to a temporary file first so readers never see partial JSON
        fd, tmp_path = tempfile.mkstemp(dir=self.records_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.records_dir / filename)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

        logger.info(f"Saved record {filename}")
        return filename

    def get_record(self, record_id: str) -> Dict[str, Any]:
        """
        Load one record by id (the timestamp part of its filename).

        Raises:
            RecordNotFoundError: If no such record exists.
        """
        try:
            self._check_id(record_id)
        except ValueError as e:
            raise RecordNotFoundError(record_id) from e

        path = self.records_dir / f"{RECORD_PREFIX}{record_id}{RECORD_SUFFIX}"
        if not path.is_file():
            raise RecordNotFoundError(record_id)

        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)

    @staticmethod
    def _check_id(record_id: str) -> None:
        if not record_id or "/" in record_id or "\\" in record_id or ".." in record_id:
            raise ValueError(f"Invalid record id: {record_id!r}")
