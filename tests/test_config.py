"""Store Configuration — environment parsing and KeyValueStoreConfig.from_settings.

Tests:
    - Defaults describe an in-memory store
    - KVSTORE_ variables are read and coerced
    - Non-positive intervals, unknown log levels and formats are rejected
    - from_settings() installs the package log handler unless told not to
    - get_settings() is cached
"""

import logging

import pytest
from pydantic import ValidationError

from kvstore.config import Settings, get_settings
from kvstore.core.domain_types import AdapterKind
from kvstore.infrastructure.sql_adapter import SqlAdapter
from kvstore.services.hook_dispatch import StoreHooks
from kvstore.services.key_value_store import KeyValueStoreConfig


def test_defaults(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    settings = Settings()
    assert settings.adapter == AdapterKind.NONE
    assert settings.sync_interval_ms is None
    assert settings.enable_versioning is False
    assert settings.adapter_timeout_seconds is None
    assert settings.log_format == "json"


def test_environment_variables_are_read(monkeypatch):
    monkeypatch.setenv("KVSTORE_ADAPTER", "sql")
    monkeypatch.setenv("KVSTORE_SQL_PATH", "/tmp/app.db")
    monkeypatch.setenv("KVSTORE_SYNC_INTERVAL_MS", "250")
    monkeypatch.setenv("KVSTORE_ENABLE_VERSIONING", "true")
    monkeypatch.setenv("KVSTORE_LOG_FORMAT", "TEXT")
    settings = Settings()
    assert settings.adapter == AdapterKind.SQL
    assert settings.sql_path == "/tmp/app.db"
    assert settings.sync_interval_ms == 250
    assert settings.enable_versioning is True
    assert settings.log_format == "text"


@pytest.mark.parametrize("field, value", [
    ("sync_interval_ms", 0),
    ("sync_interval_ms", -5),
    ("adapter_timeout_seconds", 0),
    ("log_format", "xml"),
    ("log_level", "chatty"),
])
def test_invalid_values_rejected(field, value):
    with pytest.raises(ValidationError):
        Settings(**{field: value})


def test_get_settings_is_cached():
    assert get_settings() is get_settings()


def test_store_config_from_settings(tmp_path):
    hooks = StoreHooks(on_update=lambda k, v: None)
    settings = Settings(
        adapter="sql", sql_path=str(tmp_path / "s.db"),
        sync_interval_ms=1000, enable_versioning=True, adapter_timeout_seconds=2.5,
    )
    config = KeyValueStoreConfig.from_settings(settings, hooks=hooks)
    assert isinstance(config.adapter, SqlAdapter)
    assert config.hooks is hooks
    assert config.sync_interval_ms == 1000
    assert config.enable_versioning is True
    assert config.adapter_timeout_seconds == 2.5


def test_store_config_defaults_to_empty_hooks():
    config = KeyValueStoreConfig.from_settings(Settings())
    assert config.adapter is None
    assert config.hooks == StoreHooks()


def test_store_config_from_settings_configures_package_logging():
    logger = logging.getLogger("kvstore")
    before = list(logger.handlers)
    KeyValueStoreConfig.from_settings(Settings(log_level="warning", log_format="text"))
    added = [h for h in logger.handlers if h not in before]
    assert len(added) == 1
    assert logger.level == logging.WARNING


def test_store_config_from_settings_can_skip_logging():
    logger = logging.getLogger("kvstore")
    before = list(logger.handlers)
    KeyValueStoreConfig.from_settings(Settings(), configure_logs=False)
    assert logger.handlers == before
