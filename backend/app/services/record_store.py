# app/services/record_store.py
"""
Append-only record store persisted as a single JSON array.

Every append reads the whole document, adds one record and writes the whole
document back. All access to the medium that may write (the lazy empty-file
init and the read-modify-write cycle) is serialized with one lock, which
covers one process; multiple processes sharing the file are not supported.
"""
from __future__ import annotations

import threading
from typing import Any, Callable, Dict, List, Optional

from botocore.exceptions import BotoCoreError, ClientError

from app.services.storage import StorageBackend

# JSON decode failures surface as ValueError
STORAGE_FAILURES = (OSError, ValueError, BotoCoreError, ClientError)


class StorageError(Exception):
    """Reading or writing the durable medium failed."""


class RecordStore:
    def __init__(self, storage: StorageBackend, path: str = "responses.json"):
        self.storage = storage
        self.path = path
        self._write_lock = threading.Lock()

    def ensure_store(self) -> None:
        """Create an empty record file if none exists yet. Idempotent."""
        with self._write_lock:
            self._ensure_store()

    def _ensure_store(self) -> None:
        # caller holds _write_lock
        try:
            if not self.storage.exists(self.path):
                self.storage.write_text(self.path, "[]")
        except STORAGE_FAILURES as e:
            raise StorageError(f"cannot initialize record store at {self.path}") from e

    def _read(self) -> List[Dict[str, Any]]:
        try:
            data = self.storage.read_json(self.path)
        except STORAGE_FAILURES as e:
            raise StorageError(f"cannot read record store at {self.path}") from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise StorageError(f"record store at {self.path} is not a JSON array")
        return data

    def read_all(self) -> List[Dict[str, Any]]:
        self.ensure_store()
        return self._read()

    def append(self,
               record: Dict[str, Any],
               on_written: Optional[Callable[[List[Dict[str, Any]]], None]] = None) -> List[Dict[str, Any]]:
        """
        Append one record; returns the full sequence as written.
        on_written runs with the new sequence before the lock is released, so
        anything derived from it is ordered the same way as the writes.
        """
        with self._write_lock:
            self._ensure_store()
            records = self._read()
            records.append(record)
            try:
                self.storage.write_json(self.path, records)
            except (TypeError, *STORAGE_FAILURES) as e:
                raise StorageError(f"cannot write record store at {self.path}") from e
            if on_written is not None:
                on_written(records)
            return records
