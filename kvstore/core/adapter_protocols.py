"""Adapter Protocols — capability contracts between the store engine and durable storage.

Invariants:
    - Engine NEVER imports a concrete adapter; it only sees these Protocols
    - Every capability method is async because implementations do IO
    - Enumeration and backup are optional; the engine tests for them with isinstance()

Design Decisions:
    - Protocol over ABC: structural subtyping, adapters need no common base class
    - runtime_checkable on the optional capabilities so presence is testable at runtime
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class KeyValueAdapter(Protocol):
    """Contract for single-key durable storage, implemented by infrastructure."""
    async def init(self) -> None: ...
    async def get(self, key: str) -> Any | None: ...
    async def set(self, key: str, value: Any) -> None: ...
    async def delete(self, key: str) -> None: ...


@runtime_checkable
class SupportsEnumeration(Protocol):
    """Optional capability: load every persisted key at once."""
    async def all(self) -> dict[str, Any]: ...


@runtime_checkable
class SupportsBackup(Protocol):
    """Optional capability: write a timestamped snapshot of the durable medium."""
    async def backup(self) -> str: ...


def adapter_name(adapter: object) -> str:
    """Name used in error context and log records."""
    return type(adapter).__name__
