"""Structured logging and settings — JSON log shape and env-driven configuration."""

import json
import logging
import uuid
from decimal import Decimal

from purchase_tool.config import Settings
from purchase_tool.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        "purchase_tool.test", logging.WARNING, __file__, 1, "Checkout rejected", None, None,
    )
    record.__dict__.update(extra)
    return record


def test_json_formatter_includes_known_extras():
    out = json.loads(JSONFormatter().format(
        _record(account_id="acc-1", error_code="CHECKOUT_INVALID", unrelated="x"),
    ))
    assert out["level"] == "WARNING"
    assert out["message"] == "Checkout rejected"
    assert out["account_id"] == "acc-1"
    assert out["error_code"] == "CHECKOUT_INVALID"
    assert "unrelated" not in out


def test_json_formatter_omits_missing_extras():
    out = json.loads(JSONFormatter().format(_record()))
    assert "purchase_id" not in out


def test_postgres_url_rewritten_for_asyncpg(monkeypatch):
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@host/db")
    assert Settings().database_url == "postgresql+asyncpg://u:p@host/db"


def test_timeout_configurable(monkeypatch):
    monkeypatch.setenv("COLLABORATOR_TIMEOUT_SECONDS", "2.5")
    assert Settings().collaborator_timeout_seconds == 2.5


def test_json_formatter_stringifies_ids_and_amounts():
    session_id = uuid.uuid4()
    out = json.loads(JSONFormatter().format(
        _record(session_id=session_id, operation="write", attempt=Decimal("2")),
    ))
    assert out["session_id"] == str(session_id)
    assert out["operation"] == "write"
    assert out["attempt"] == "2"


def test_setup_logging_twice_keeps_one_handler():
    root = logging.getLogger()
    before, before_level = list(root.handlers), root.level
    try:
        first = setup_logging("DEBUG", "json")
        second = setup_logging("INFO", "text")
        ours = [h for h in root.handlers if h.get_name() == first.get_name()]
        assert ours == [second]
        assert root.level == logging.INFO
        assert logging.getLogger("httpx").level == logging.WARNING
    finally:
        for handler in list(root.handlers):
            if handler not in before:
                root.removeHandler(handler)
        root.setLevel(before_level)
