"""Key-Value Table — the two-column schema used by the relational adapter.

Invariants:
    - key is TEXT PRIMARY KEY, value is serialized TEXT
    - Table names are plain SQL identifiers
"""

import re

from sqlalchemy import Column, MetaData, Table, Text

from kvstore.core.domain_types import DEFAULT_TABLE_NAME

_IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def build_kv_table(table_name: str = DEFAULT_TABLE_NAME) -> Table:
    """Build a fresh Table (on its own MetaData) for the given name."""
    if not _IDENTIFIER.fullmatch(table_name):
        raise ValueError(f"Invalid table name: {table_name!r}")
    return Table(
        table_name,
        MetaData(),
        Column("key", Text, primary_key=True),
        Column("value", Text),
    )
