"""File Adapter — tests for the JSON-document persistence backend.

Invariants:
    - Missing, corrupt or non-object documents start empty and are rewritten at init
    - set/delete rewrite the document immediately
    - Calls before init() raise NotInitializedError
    - backup() writes `<path>.<unix_ms>.backup` with the flushed document
    - Filesystem failures surface as AdapterIOError and leave the cache unchanged
    - Unencodable values raise NotSerializableError
"""

import json
import math
import re
import time

import pytest

from kvstore.core.adapter_protocols import (
    KeyValueAdapter, SupportsBackup, SupportsEnumeration,
)
from kvstore.core.errors import AdapterIOError, NotInitializedError, NotSerializableError
from kvstore.infrastructure.file_adapter import FileAdapter


def _read(path):
    return json.loads(path.read_text(encoding="utf-8"))


def test_implements_all_capabilities(file_adapter):
    assert isinstance(file_adapter, KeyValueAdapter)
    assert isinstance(file_adapter, SupportsEnumeration)
    assert isinstance(file_adapter, SupportsBackup)


async def test_init_creates_missing_document(file_path, file_adapter):
    await file_adapter.init()
    assert _read(file_path) == {}
    assert await file_adapter.all() == {}


async def test_init_creates_parent_directories(tmp_path):
    path = tmp_path / "nested" / "dir" / "store.json"
    adapter = FileAdapter(path)
    await adapter.init()
    assert path.exists()


async def test_init_loads_existing_document(file_path, file_adapter):
    file_path.write_text(json.dumps({"a": 1, "b": [1, 2]}), encoding="utf-8")
    await file_adapter.init()
    assert await file_adapter.get("a") == 1
    assert await file_adapter.all() == {"a": 1, "b": [1, 2]}


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", "null", "42", ""])
async def test_init_resets_unusable_document(file_path, file_adapter, content):
    file_path.write_text(content, encoding="utf-8")
    await file_adapter.init()
    assert await file_adapter.all() == {}
    assert _read(file_path) == {}


async def test_set_and_delete_rewrite_document(file_path, file_adapter):
    await file_adapter.init()
    await file_adapter.set("user", {"name": "Ada"})
    assert _read(file_path) == {"user": {"name": "Ada"}}
    await file_adapter.delete("user")
    assert _read(file_path) == {}
    await file_adapter.delete("never-existed")
    assert _read(file_path) == {}


async def test_get_missing_key_returns_none(file_adapter):
    await file_adapter.init()
    assert await file_adapter.get("missing") is None


async def test_all_returns_a_copy(file_adapter):
    await file_adapter.init()
    await file_adapter.set("a", 1)
    snapshot = await file_adapter.all()
    snapshot["b"] = 2
    assert await file_adapter.get("b") is None


async def test_methods_before_init_raise(file_adapter):
    with pytest.raises(NotInitializedError):
        await file_adapter.get("a")
    with pytest.raises(NotInitializedError):
        await file_adapter.set("a", 1)
    with pytest.raises(NotInitializedError):
        await file_adapter.delete("a")
    with pytest.raises(NotInitializedError):
        await file_adapter.all()
    with pytest.raises(NotInitializedError):
        await file_adapter.backup()


async def test_backup_copies_document_with_timestamp(file_path, file_adapter):
    await file_adapter.init()
    await file_adapter.set("a", 1)
    before = int(time.time() * 1000)
    backup = await file_adapter.backup()
    match = re.fullmatch(re.escape(str(file_path)) + r"\.(\d+)\.backup", backup)
    assert match is not None
    assert int(match.group(1)) >= before
    with open(backup, encoding="utf-8") as f:
        assert json.load(f) == {"a": 1}


async def test_backup_is_immutable_snapshot(file_path, file_adapter):
    await file_adapter.init()
    await file_adapter.set("a", 1)
    backup = await file_adapter.backup()
    await file_adapter.set("a", 2)
    with open(backup, encoding="utf-8") as f:
        assert json.load(f) == {"a": 1}


async def test_unreadable_path_raises_adapter_io_error(tmp_path):
    adapter = FileAdapter(tmp_path)
    with pytest.raises(AdapterIOError) as exc_info:
        await adapter.init()
    assert exc_info.value.operation == "init"
    assert not adapter.initialized


async def test_write_failure_raises_adapter_io_error(file_path, file_adapter):
    await file_adapter.init()
    file_path.unlink()
    file_path.mkdir()
    with pytest.raises(AdapterIOError, match="Unable to write") as exc_info:
        await file_adapter.set("a", 1)
    assert exc_info.value.operation == "set"


async def test_values_are_stored_as_json_representation(file_path, file_adapter):
    from datetime import date

    await file_adapter.init()
    await file_adapter.set("day", date(2024, 3, 1))
    assert _read(file_path) == {"day": "2024-03-01"}


@pytest.mark.parametrize("value", [math.nan, {1: "a"}, object()])
async def test_unserializable_value_is_rejected_before_cache_changes(
    file_path, file_adapter, value,
):
    await file_adapter.init()
    await file_adapter.set("a", 1)
    with pytest.raises(NotSerializableError) as exc_info:
        await file_adapter.set("bad", value)
    assert exc_info.value.context.key == "bad"
    assert await file_adapter.all() == {"a": 1}

    await file_adapter.set("good", 2)
    assert _read(file_path) == {"a": 1, "good": 2}


async def test_failed_write_rolls_back_cache(file_path, file_adapter):
    await file_adapter.init()
    await file_adapter.set("a", 1)
    file_path.unlink()
    file_path.mkdir()

    with pytest.raises(AdapterIOError):
        await file_adapter.set("a", 2)
    with pytest.raises(AdapterIOError):
        await file_adapter.set("b", 3)
    with pytest.raises(AdapterIOError):
        await file_adapter.delete("a")
    assert await file_adapter.all() == {"a": 1}

    file_path.rmdir()
    await file_adapter.set("c", 4)
    assert _read(file_path) == {"a": 1, "c": 4}
