"""Domain Types — shared constants, aliases and enums for the store.

Invariants:
    - VERSION_KEY is never a user key (the engine rejects it on set/delete)
    - VERSIONING_DISABLED (-1) is the only negative value the version counter takes
    - All valid hook and adapter names encoded as Enums, no raw string matching
"""

from enum import Enum
from typing import Any, NewType, TypeAlias


# ─── Reserved Names ──────────────────────────────────────────────

VERSION_KEY = "__version__"
VERSIONING_DISABLED = -1
DEFAULT_TABLE_NAME = "key_value_store"
BACKUP_SUFFIX = ".backup"


# ─── Value Types ─────────────────────────────────────────────────

JsonValue: TypeAlias = Any
TimestampMs = NewType("TimestampMs", int)   # unix epoch milliseconds


# ─── Enums ───────────────────────────────────────────────────────

class HookName(str, Enum):
    """Store lifecycle events that can carry a user callback."""
    UPDATE = "on_update"
    DELETE = "on_delete"
    BACKUP = "on_backup"


class AdapterKind(str, Enum):
    """Persistence backends selectable from settings."""
    NONE = "none"
    FILE = "file"
    SQL = "sql"


def backup_path_for(path: str, timestamp_ms: int) -> str:
    """`<path>.<unixTimestampMs>.backup`, a sibling of the durable medium."""
    return f"{path}.{timestamp_ms}{BACKUP_SUFFIX}"
