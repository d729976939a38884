"""Codec — the JSON serialization policy shared by the engine and both adapters.

Invariants:
    - A value accepted by ensure_serializable() always encodes with encode()
    - Cyclic structures, NaN/Infinity and unsupported objects are rejected
    - Mapping keys must be str at every depth; json would silently stringify the rest
    - Types without a JSON equivalent (datetime, UUID, Enum, set, pydantic models)
      encode to their JSON representation and do NOT round-trip to the original type
    - decode() never raises: non-JSON text comes back as the raw string
"""

import json
from typing import Any

from pydantic_core import to_jsonable_python

from kvstore.core.errors import NotSerializableError


def _default(obj: Any) -> Any:
    return to_jsonable_python(obj)


def _check_keys(value: Any) -> None:
    # Runs after json.dumps succeeded, so the structure is acyclic.
    stack = [value]
    while stack:
        item = stack.pop()
        if isinstance(item, dict):
            for k, v in item.items():
                if not isinstance(k, str):
                    raise TypeError(
                        f"keys must be str, not {type(k).__name__} ({k!r})",
                    )
                stack.append(v)
        elif isinstance(item, (list, tuple)):
            stack.extend(item)


def encode(value: Any, *, indent: int | None = None) -> str:
    """Encode a value as JSON text. Raises TypeError/ValueError on bad input."""
    text = json.dumps(
        value, default=_default, allow_nan=False, ensure_ascii=False, indent=indent,
    )
    _check_keys(value)
    return text


def ensure_serializable(value: Any, key: str | None = None) -> None:
    """Probe-encode the value; raise NotSerializableError if it cannot be stored."""
    try:
        encode(value)
    except RecursionError:
        raise NotSerializableError(key, "structure is too deeply nested") from None
    except (TypeError, ValueError) as e:
        raise NotSerializableError(key, str(e)) from e


def decode(text: str) -> Any:
    """Decode stored JSON text, falling back to the raw text for legacy values."""
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        return text
