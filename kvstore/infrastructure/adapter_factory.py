"""Adapter Factory — explicit mapping from configured AdapterKind to adapter instance."""

from kvstore.config import Settings
from kvstore.core.adapter_protocols import KeyValueAdapter
from kvstore.core.domain_types import AdapterKind
from kvstore.infrastructure.file_adapter import FileAdapter
from kvstore.infrastructure.sql_adapter import SqlAdapter


def build_adapter(settings: Settings) -> KeyValueAdapter | None:
    """Return the adapter selected by settings, or None for a memory-only store."""
    if settings.adapter == AdapterKind.FILE:
        return FileAdapter(settings.file_path)
    if settings.adapter == AdapterKind.SQL:
        return SqlAdapter(settings.sql_path, table_name=settings.sql_table_name)
    return None
