"""Key-Value Store — in-memory map with validation, hooks, versioning and explicit persistence.

Invariants:
    - get/set/delete are synchronous and touch only the in-memory map
    - init/sync/create_backup are the only operations that reach the adapter
    - Version is -1 when disabled, otherwise bumped by exactly 1 per observable change
    - A rejected key, value or validation leaves the map and version untouched
    - Hook failures never propagate to, or alter the result of, the triggering call
    - "__version__" never lives in the in-memory map, nor does a None value (None is absent)

Design Decisions:
    - Persistence is push-only: sync() writes a full snapshot, then replays deletions
      recorded since the last sync so removed keys do not come back on the next init()
    - Adapter calls go through _call(): optional timeout, OSError mapped to AdapterIOError
    - A partially failed sync is not rolled back; repeating sync() is safe
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Iterator, TypeVar

from kvstore.config import Settings
from kvstore.core.adapter_protocols import (
    KeyValueAdapter, SupportsBackup, SupportsEnumeration, adapter_name,
)
from kvstore.core.codec import ensure_serializable
from kvstore.core.domain_types import HookName, VERSION_KEY, VERSIONING_DISABLED
from kvstore.core.errors import AdapterIOError, AdapterTimeoutError, InvalidKeyError
from kvstore.core.validators import Validator, run_validator
from kvstore.infrastructure.adapter_factory import build_adapter
from kvstore.infrastructure.observability import configure_logging
from kvstore.services.hook_dispatch import HookDispatcher, StoreHooks
from kvstore.services.periodic_sync import PeriodicSync

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class KeyValueStoreConfig:
    """Recognized store options. Every field is optional."""
    adapter: KeyValueAdapter | None = None
    hooks: StoreHooks = field(default_factory=StoreHooks)
    sync_interval_ms: int | None = None
    enable_versioning: bool = False
    adapter_timeout_seconds: float | None = None

    @classmethod
    def from_settings(
        cls, settings: Settings, hooks: StoreHooks | None = None,
        configure_logs: bool = True,
    ) -> "KeyValueStoreConfig":
        """Build a config (adapter included) from environment settings.

        Also installs the kvstore log handler unless configure_logs is False.
        """
        if configure_logs:
            configure_logging(settings)
        return cls(
            adapter=build_adapter(settings),
            hooks=hooks or StoreHooks(),
            sync_interval_ms=settings.sync_interval_ms,
            enable_versioning=settings.enable_versioning,
            adapter_timeout_seconds=settings.adapter_timeout_seconds,
        )


class KeyValueStore:
    """Embedded key-value store backed by an optional persistence adapter."""

    def __init__(self, config: KeyValueStoreConfig | None = None):
        config = config or KeyValueStoreConfig()
        if config.adapter is not None and not isinstance(config.adapter, KeyValueAdapter):
            raise TypeError(
                f"{adapter_name(config.adapter)} does not implement KeyValueAdapter",
            )
        self._data: dict[str, Any] = {}
        self._deleted: set[str] = set()
        self._adapter = config.adapter
        self._hooks = HookDispatcher(config.hooks)
        self._version = 0 if config.enable_versioning else VERSIONING_DISABLED
        self._timeout = config.adapter_timeout_seconds
        self._timer: PeriodicSync | None = None
        if config.sync_interval_ms and self._adapter is not None:
            self._timer = PeriodicSync(self.sync, config.sync_interval_ms)

    async def __aenter__(self) -> "KeyValueStore":
        await self.init()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.dispose()
        await self._hooks.drain()
        self._hooks.close()

    # ─── Properties ──────────────────────────────────────────────

    @property
    def adapter(self) -> KeyValueAdapter | None:
        return self._adapter

    @property
    def hooks(self) -> HookDispatcher:
        return self._hooks

    @property
    def versioning_enabled(self) -> bool:
        return self._version != VERSIONING_DISABLED

    # ─── Lifecycle ───────────────────────────────────────────────

    async def init(self) -> None:
        """Initialize the adapter and load every persisted key into memory."""
        if self._adapter is None:
            return
        await self._call(self._adapter.init(), "init")

        if isinstance(self._adapter, SupportsEnumeration):
            loaded = dict(await self._call(self._adapter.all(), "all"))
            stored_version = loaded.pop(VERSION_KEY, None)
            loaded = {k: v for k, v in loaded.items() if v is not None}
            self._data.update(loaded)
            if self.versioning_enabled and _is_version(stored_version):
                self._version = stored_version
            logger.info(
                f"Loaded {len(loaded)} keys from {adapter_name(self._adapter)}",
                extra={
                    "adapter": adapter_name(self._adapter),
                    "version": self._version,
                },
            )

        if self._timer is not None:
            self._timer.start()

    def dispose(self) -> None:
        """Cancel the periodic-sync timer. Leaves the map and adapter alone."""
        if self._timer is not None:
            self._timer.stop()

    # ─── Map Operations ──────────────────────────────────────────

    def get(self, key: str, validator: Validator[T] | None = None) -> T | Any | None:
        """Current value for key (None when absent), optionally validated on read."""
        _require_str_key(key)
        value = self._data.get(key)
        if value is None or validator is None:
            return value
        return run_validator(validator, value, key)

    def set(self, key: str, value: Any, validator: Validator[T] | None = None) -> T | Any | None:
        """Store value under key and return what was stored.

        Setting None deletes the key.
        """
        _require_user_key(key)
        ensure_serializable(value, key)
        stored = value
        if validator is not None:
            stored = run_validator(validator, value, key)
            if stored is not value:
                ensure_serializable(stored, key)

        if stored is None:
            self.delete(key)
            return None

        self._data[key] = stored
        self._deleted.discard(key)
        self._bump_version()
        self._hooks.fire(HookName.UPDATE, key, stored)
        return stored

    def delete(self, key: str) -> None:
        """Remove key. Deleting an absent key changes nothing."""
        _require_user_key(key)
        if key not in self._data:
            return
        del self._data[key]
        if self._adapter is not None:
            self._deleted.add(key)
        self._bump_version()
        self._hooks.fire(HookName.DELETE, key)

    def get_version(self) -> int:
        return self._version

    def has(self, key: str) -> bool:
        _require_str_key(key)
        return key in self._data

    def keys(self) -> list[str]:
        return list(self._data)

    def snapshot(self) -> dict[str, Any]:
        """Shallow copy of the in-memory map."""
        return dict(self._data)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key in self._data

    def __len__(self) -> int:
        return len(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    # ─── Persistence ─────────────────────────────────────────────

    async def sync(self) -> None:
        """Push the version and every entry to the adapter, then replay deletions."""
        if self._adapter is None:
            return
        if self.versioning_enabled:
            await self._call(self._adapter.set(VERSION_KEY, self._version), "set")

        entries = list(self._data.items())
        for key, value in entries:
            await self._call(self._adapter.set(key, value), "set")

        for key in list(self._deleted):
            await self._call(self._adapter.delete(key), "delete")
            self._deleted.discard(key)

        logger.debug(
            f"Synced {len(entries)} keys",
            extra={"adapter": adapter_name(self._adapter), "version": self._version},
        )

    async def create_backup(self) -> str | None:
        """Ask the adapter for a timestamped backup. Returns its path, if any."""
        if not isinstance(self._adapter, SupportsBackup):
            return None
        backup_version = max(self._version, 0)
        path = await self._call(self._adapter.backup(), "backup")
        timestamp = int(time.time() * 1000)
        logger.debug(
            f"Backup created at {path}",
            extra={"adapter": adapter_name(self._adapter), "version": backup_version},
        )
        self._hooks.fire(HookName.BACKUP, timestamp, backup_version)
        return path

    # ─── Internals ───────────────────────────────────────────────

    def _bump_version(self) -> None:
        if self.versioning_enabled:
            self._version += 1

    async def _call(self, awaitable: Awaitable[T], operation: str) -> T:
        name = adapter_name(self._adapter)
        try:
            if self._timeout is None:
                return await awaitable
            try:
                return await asyncio.wait_for(awaitable, self._timeout)
            except asyncio.TimeoutError:
                raise AdapterTimeoutError(operation, self._timeout, name) from None
        except OSError as e:
            raise AdapterIOError(f"{name} {operation} failed: {e}", operation, name) from e


def _require_str_key(key: object) -> None:
    if not isinstance(key, str):
        raise InvalidKeyError(key)


def _require_user_key(key: object) -> None:
    _require_str_key(key)
    if key == VERSION_KEY:
        raise InvalidKeyError(key, f"{VERSION_KEY!r} is reserved for the version counter")


def _is_version(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0
