"""SQL Adapter — key/value pairs in one SQLite table through an async SQLAlchemy engine.

Invariants:
    - One engine per adapter, created by init() and released by close()
    - A failed init() leaves no engine behind; every other method then raises
      NotInitializedError until init() succeeds
    - Every connection auto-rolls-back on exception (no partial commits leak)
    - All SQLAlchemy exceptions mapped to AdapterIOError (core/errors.py)
    - Stored text that is not JSON is returned as the raw string

Design Decisions:
    - aiosqlite driver: the database is a local file, backups copy that file
    - Core Table instead of an ORM model: the table name is chosen at runtime
"""

import asyncio
import logging
import os
import shutil
import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine

from kvstore.core.codec import decode, encode
from kvstore.core.domain_types import DEFAULT_TABLE_NAME, backup_path_for
from kvstore.core.errors import AdapterIOError, NotInitializedError, NotSerializableError
from kvstore.db.tables import build_kv_table

logger = logging.getLogger(__name__)

_ADAPTER = "SqlAdapter"


class SqlAdapter:
    """SQLite persistence with upserts and file-copy backups."""

    def __init__(
        self, path: str | os.PathLike[str], table_name: str = DEFAULT_TABLE_NAME,
    ):
        self.path = os.fspath(path)
        self.table_name = table_name
        self._table = build_kv_table(table_name)
        self._engine: AsyncEngine | None = None

    @property
    def url(self) -> str:
        return f"sqlite+aiosqlite:///{self.path}"

    @property
    def initialized(self) -> bool:
        return self._engine is not None

    async def init(self) -> None:
        """Open the database and create the table if absent."""
        await self.close()
        engine = create_async_engine(self.url, echo=False)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(self._table.metadata.create_all)
        except SQLAlchemyError as e:
            await engine.dispose()
            reason = getattr(e, "orig", None) or e
            logger.error(
                f"Unable to open database file at {self.path}: {reason}",
                extra={"adapter": _ADAPTER, "operation": "init"},
            )
            raise AdapterIOError(
                f"Unable to open database file at {self.path}: {reason}",
                "init", _ADAPTER,
            ) from e
        self._engine = engine

    async def close(self) -> None:
        """Dispose the engine. Safe to call more than once."""
        if self._engine is not None:
            engine, self._engine = self._engine, None
            await engine.dispose()

    async def get(self, key: str) -> Any | None:
        col = self._table.c
        async with self._connection("get") as conn:
            result = await conn.execute(select(col["value"]).where(col["key"] == key))
            row = result.first()
        if row is None:
            return None
        return decode(row[0])

    async def set(self, key: str, value: Any) -> None:
        """Insert, or replace the value on key conflict."""
        try:
            payload = encode(value)
        except (TypeError, ValueError) as e:
            raise NotSerializableError(key, str(e)) from e
        stmt = sqlite_insert(self._table).values({"key": key, "value": payload})
        stmt = stmt.on_conflict_do_update(
            index_elements=[self._table.c["key"]],
            set_={"value": stmt.excluded["value"]},
        )
        async with self._connection("set") as conn:
            await conn.execute(stmt)

    async def delete(self, key: str) -> None:
        async with self._connection("delete") as conn:
            await conn.execute(delete(self._table).where(self._table.c["key"] == key))

    async def all(self) -> dict[str, Any]:
        col = self._table.c
        async with self._connection("all") as conn:
            result = await conn.execute(select(col["key"], col["value"]))
            rows = result.all()
        return {row[0]: decode(row[1]) for row in rows}

    async def backup(self) -> str:
        """Copy the database file to `<path>.<unix_ms>.backup`."""
        self._ensure_initialized()
        target = backup_path_for(self.path, int(time.time() * 1000))
        try:
            await asyncio.to_thread(shutil.copyfile, self.path, target)
        except OSError as e:
            raise AdapterIOError(
                f"Backup of {self.path} failed: {e}", "backup", _ADAPTER,
            ) from e
        return target

    # ─── Internals ───────────────────────────────────────────────

    def _ensure_initialized(self) -> AsyncEngine:
        if self._engine is None:
            raise NotInitializedError(_ADAPTER)
        return self._engine

    @asynccontextmanager
    async def _connection(self, operation: str) -> AsyncGenerator[AsyncConnection, None]:
        """Transactional connection; commits on exit, rolls back on exception."""
        engine = self._ensure_initialized()
        try:
            async with engine.begin() as conn:
                yield conn
        except IntegrityError as e:
            logger.error(f"DB integrity error: {e}", extra={"operation": operation})
            raise AdapterIOError(
                "Integrity constraint violated", operation, _ADAPTER,
            ) from e
        except OperationalError as e:
            logger.error(f"DB operational error: {e}", extra={"operation": operation})
            raise AdapterIOError(
                f"Connection or operational error: {e.orig or e}", operation, _ADAPTER,
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"SQLAlchemy error: {e}", extra={"operation": operation})
            raise AdapterIOError(
                "Database operation failed", operation, _ADAPTER,
            ) from e
