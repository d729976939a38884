"""File Adapter — key/value pairs kept in a single JSON document on disk.

Invariants:
    - The in-memory cache mirrors the document; a failed set/delete is rolled back
    - Values that cannot be encoded raise NotSerializableError before the cache changes
    - Every set/delete rewrites the whole document atomically (temp file + replace)
    - A missing, unparsable or non-object document starts empty and is persisted at init
    - Methods other than init() raise NotInitializedError until init() succeeds
    - OSError from the filesystem surfaces as AdapterIOError
"""

import asyncio
import json
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Any

from kvstore.core.codec import encode
from kvstore.core.domain_types import backup_path_for
from kvstore.core.errors import AdapterIOError, NotInitializedError, NotSerializableError

logger = logging.getLogger(__name__)

_MISSING = object()


class FileAdapter:
    """JSON-file persistence with optional timestamped backups."""

    def __init__(self, file_path: str | os.PathLike[str]):
        self.file_path = Path(file_path)
        self._cache: dict[str, Any] = {}
        self._initialized = False

    @property
    def initialized(self) -> bool:
        return self._initialized

    async def init(self) -> None:
        try:
            document = await asyncio.to_thread(self._read)
        except OSError as e:
            raise AdapterIOError(
                f"Unable to read {self.file_path}: {e}", "init", "FileAdapter",
            ) from e
        self._cache = document if document is not None else {}
        if document is None:
            logger.info(
                f"Starting empty document at {self.file_path}",
                extra={"adapter": "FileAdapter", "operation": "init"},
            )
            await self._flush("init")
        self._initialized = True

    async def get(self, key: str) -> Any | None:
        self._ensure_initialized()
        return self._cache.get(key)

    async def set(self, key: str, value: Any) -> None:
        self._ensure_initialized()
        try:
            encode(value)
        except (TypeError, ValueError) as e:
            raise NotSerializableError(key, str(e)) from e
        previous = self._cache.get(key, _MISSING)
        self._cache[key] = value
        try:
            await self._flush("set")
        except AdapterIOError:
            self._restore(key, previous)
            raise

    async def delete(self, key: str) -> None:
        self._ensure_initialized()
        if key not in self._cache:
            return
        previous = self._cache.pop(key)
        try:
            await self._flush("delete")
        except AdapterIOError:
            self._restore(key, previous)
            raise

    async def all(self) -> dict[str, Any]:
        self._ensure_initialized()
        return dict(self._cache)

    async def backup(self) -> str:
        """Flush, then copy the document to `<path>.<unix_ms>.backup`."""
        self._ensure_initialized()
        await self._flush("backup")
        target = backup_path_for(str(self.file_path), int(time.time() * 1000))
        try:
            await asyncio.to_thread(shutil.copyfile, self.file_path, target)
        except OSError as e:
            raise AdapterIOError(
                f"Backup of {self.file_path} failed: {e}", "backup", "FileAdapter",
            ) from e
        return target

    # ─── Internals ───────────────────────────────────────────────

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise NotInitializedError("FileAdapter")

    def _restore(self, key: str, previous: Any) -> None:
        if previous is _MISSING:
            self._cache.pop(key, None)
        else:
            self._cache[key] = previous

    def _read(self) -> dict[str, Any] | None:
        try:
            with open(self.file_path, "r", encoding="utf-8") as f:
                document = json.load(f)
        except (FileNotFoundError, json.JSONDecodeError, UnicodeDecodeError):
            return None
        if not isinstance(document, dict):
            return None
        return document

    def _write(self, text: str) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.file_path.with_name(self.file_path.name + ".tmp")
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(text)
        tmp.replace(self.file_path)

    async def _flush(self, operation: str) -> None:
        try:
            text = encode(self._cache, indent=2)
        except (TypeError, ValueError) as e:
            raise AdapterIOError(
                f"Document at {self.file_path} is not serializable: {e}",
                operation, "FileAdapter",
            ) from e
        try:
            await asyncio.to_thread(self._write, text)
        except OSError as e:
            raise AdapterIOError(
                f"Unable to write {self.file_path}: {e}", operation, "FileAdapter",
            ) from e
