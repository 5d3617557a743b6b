"""
JSON File Storage Implementation

Stores every key in a single JSON document on disk. This is the
desktop/CLI counterpart of the device key-value store:
- No database setup required
- The file is human-readable, so users can inspect or back it up

Writes go to a temporary file that is then renamed over the target, so
a crash mid-write never leaves a truncated document behind. Transient
I/O errors (locked file, busy network drive) are retried.
"""

import json
import os
from pathlib import Path
from typing import Optional

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hustleledger.config import get_settings
from hustleledger.services.storage.interface import (
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)


_io_retry = retry(
    retry=retry_if_exception_type(OSError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
    reraise=True,
)


class JsonFileKeyValueStorage(KeyValueStorageInterface):
    """Key-value store persisted as one JSON object."""

    def __init__(self, path: Optional[Path] = None):
        if path is None:
            settings = get_settings().storage
            path = Path(settings.data_dir) / settings.file_name
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    @_io_retry
    def _read_text(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    @_io_retry
    def _write_text(self, text: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(text, encoding="utf-8")
        os.replace(tmp_path, self._path)

    def _load_document(self) -> dict[str, str]:
        try:
            text = self._read_text()
        except OSError as e:
            raise StorageReadError(f"Failed to read {self._path}: {e}")

        if not text:
            return {}
        try:
            document = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Corrupt storage document {self._path}: {e}")
        if not isinstance(document, dict):
            raise StorageReadError(f"Storage document {self._path} is not an object")
        return document

    def _save_document(self, document: dict[str, str]) -> None:
        try:
            self._write_text(json.dumps(document, indent=2, sort_keys=True))
        except OSError as e:
            raise StorageWriteError(f"Failed to write {self._path}: {e}")

    async def get_item(self, key: str) -> Optional[str]:
        value = self._load_document().get(key)
        return None if value is None else str(value)

    async def set_item(self, key: str, value: str) -> None:
        document = self._load_document()
        document[key] = value
        self._save_document(document)

    async def remove_item(self, key: str) -> None:
        document = self._load_document()
        if key in document:
            del document[key]
            self._save_document(document)
