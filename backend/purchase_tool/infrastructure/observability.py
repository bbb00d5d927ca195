"""Structured Logging — one JSON line per purchase-tool event.

Invariants:
    - Every line has timestamp, level, logger, message
    - Purchase-domain extras (session/account/item/purchase ids, error_code,
      operation, attempt, path) are copied only when set; UUIDs and Decimals
      serialize as strings
    - setup_logging is idempotent: calling it again replaces its own handler,
      so repeated app startups (tests, reload) never duplicate lines

Design Decisions:
    - stdlib logging + a small JSON formatter, no structlog: workflows log through
      logging.getLogger(__name__) and stay framework-free
    - httpx / sqlalchemy.engine pinned to WARNING: per-request INFO from the image
      client transport and per-statement SQL would drown purchase events
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_KEYS = (
    "session_id", "account_id", "item_id", "purchase_id",
    "error_code", "operation", "attempt", "path",
)

NOISY_LOGGERS = ("httpx", "httpcore", "sqlalchemy.engine", "aiosqlite")

_HANDLER_NAME = "purchase_tool"


class JSONFormatter(logging.Formatter):

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_KEYS:
            val = getattr(record, key, None)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install (or replace) the purchase-tool root handler."""
    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == _HANDLER_NAME:
            root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return handler
