"""Root conftest — shared test configuration.

Invariants:
    - No KVSTORE_ variable from the developer's shell leaks into tests
    - get_settings() cache is cleared around every test
    - File and database targets live under tmp_path
    - The "kvstore" logger is restored after every test
"""

import logging
import os

import pytest

from kvstore.config import get_settings
from kvstore.infrastructure.file_adapter import FileAdapter
from kvstore.infrastructure.sql_adapter import SqlAdapter

for _name in [k for k in os.environ if k.upper().startswith("KVSTORE_")]:
    del os.environ[_name]


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def file_path(tmp_path):
    return tmp_path / "store.json"


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "store.db"


@pytest.fixture
def file_adapter(file_path):
    return FileAdapter(file_path)


@pytest.fixture
async def sql_adapter(db_path):
    adapter = SqlAdapter(db_path)
    yield adapter
    await adapter.close()


@pytest.fixture
async def make_sql_adapter(db_path):
    """Factory for extra adapters over the same database; all closed on teardown."""
    created: list[SqlAdapter] = []

    def _make(**kwargs) -> SqlAdapter:
        adapter = SqlAdapter(kwargs.pop("path", db_path), **kwargs)
        created.append(adapter)
        return adapter

    yield _make
    for adapter in created:
        await adapter.close()


@pytest.fixture(autouse=True)
def restore_package_logger():
    """Undo configure_logging() so handlers never leak between tests."""
    logger = logging.getLogger("kvstore")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in handlers:
            logger.removeHandler(handler)
    logger.setLevel(level)
