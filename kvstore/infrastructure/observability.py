"""Store Logging — JSON records for the kvstore logger tree, configured from Settings.

Invariants:
    - Every record carries timestamp, level, logger and message
    - Store context (key, hook, operation, adapter, version) is surfaced when present
    - A KVStoreError attached to a record contributes its code, category and severity
    - configure_logging() owns at most one handler on the "kvstore" logger; calling it
      again replaces that handler instead of stacking a second one

Design Decisions:
    - Only the package logger is touched, never the root logger: the embedding
      application keeps control of its own handlers, records still propagate to it
"""

import json
import logging
from datetime import datetime, timezone

from kvstore.config import Settings, get_settings
from kvstore.core.errors import KVStoreError

PACKAGE_LOGGER = "kvstore"

_CONTEXT_FIELDS = ("key", "hook", "operation", "adapter", "version")
_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            val = getattr(record, name, None)
            if val is not None:
                entry[name] = val
        if record.exc_info:
            exc = record.exc_info[1]
            if isinstance(exc, KVStoreError):
                entry["error_code"] = exc.code
                entry["error_category"] = exc.category.value
                entry["error_severity"] = exc.severity.value
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(settings: Settings | None = None) -> logging.Handler:
    """Attach the store's handler to the "kvstore" logger using log_level/log_format."""
    settings = settings or get_settings()
    logger = logging.getLogger(PACKAGE_LOGGER)
    for existing in list(logger.handlers):
        if getattr(existing, "_kvstore_owned", False):
            logger.removeHandler(existing)

    handler = logging.StreamHandler()
    handler._kvstore_owned = True
    if settings.log_format == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(settings.log_level)
    return handler
