"""kvstore — embedded key-value store with pluggable persistence.

Invariants:
    - Package root performs no IO at import time
"""

from kvstore.core.adapter_protocols import (
    KeyValueAdapter,
    SupportsBackup,
    SupportsEnumeration,
)
from kvstore.core.errors import (
    AdapterIOError,
    AdapterTimeoutError,
    InvalidKeyError,
    KVStoreError,
    NotInitializedError,
    NotSerializableError,
    ValidationFailedError,
)
from kvstore.core.validators import Validator, pydantic_validator
from kvstore.infrastructure.file_adapter import FileAdapter
from kvstore.infrastructure.observability import configure_logging
from kvstore.infrastructure.sql_adapter import SqlAdapter
from kvstore.services.hook_dispatch import StoreHooks
from kvstore.services.key_value_store import KeyValueStore, KeyValueStoreConfig

__all__ = [
    "AdapterIOError",
    "AdapterTimeoutError",
    "FileAdapter",
    "InvalidKeyError",
    "KVStoreError",
    "KeyValueAdapter",
    "KeyValueStore",
    "KeyValueStoreConfig",
    "NotInitializedError",
    "NotSerializableError",
    "SqlAdapter",
    "StoreHooks",
    "SupportsBackup",
    "SupportsEnumeration",
    "ValidationFailedError",
    "Validator",
    "configure_logging",
    "pydantic_validator",
]
