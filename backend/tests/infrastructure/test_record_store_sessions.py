"""Record store sessions — SQLAlchemy failures surface as PersistenceError.

Tests cover:
    - NOT NULL violations become field errors (sqlite and postgres wording)
    - Unique / foreign-key violations become page errors with 409
    - Translated errors decode to a user message like any record-service error
    - Live session: constraint failure rolls back and raises PersistenceError
    - health_check, close_db
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError, OperationalError

from purchase_tool.core.error_decoding import decode_error_message
from purchase_tool.core.errors import PersistenceError, RemoteError
import purchase_tool.infrastructure.database as db_module
from purchase_tool.infrastructure.database import (
    DatabaseSessionManager, translate_error, translate_integrity_error,
)


def _integrity(message: str) -> IntegrityError:
    return IntegrityError("INSERT INTO items ...", {}, Exception(message))


def test_sqlite_not_null_is_field_error():
    err = translate_integrity_error(_integrity("NOT NULL constraint failed: items.name"))
    assert isinstance(err, RemoteError)
    assert err.field_errors == {"name": ["Required field is missing"]}
    assert err.page_errors == []
    assert err.http_status == 400


def test_postgres_not_null_is_field_error():
    err = translate_integrity_error(_integrity(
        'null value in column "price" of relation "items" violates not-null constraint',
    ))
    assert err.field_errors == {"price": ["Required field is missing"]}


def test_unique_violation_is_page_error():
    err = translate_integrity_error(_integrity("UNIQUE constraint failed: accounts.name"))
    assert err.page_errors == ["A record with the same values already exists"]
    assert err.http_status == 409
    assert decode_error_message(err) == "A record with the same values already exists"


def test_foreign_key_violation_is_page_error():
    err = translate_integrity_error(_integrity("FOREIGN KEY constraint failed"))
    assert err.page_errors == ["Referenced record does not exist"]


def test_operational_error_is_unreachable():
    err = translate_error(OperationalError("SELECT 1", {}, Exception("connection refused")))
    assert err.operation == "connect"
    assert err.http_status == 503


@pytest.fixture
async def manager():
    m = DatabaseSessionManager("sqlite+aiosqlite:///:memory:")
    yield m
    await m.close()


async def test_constraint_failure_in_session_raises_persistence_error(manager):
    with pytest.raises(PersistenceError) as exc_info:
        async with manager.session() as db:
            await db.execute(text(
                "CREATE TABLE parts (id INTEGER PRIMARY KEY, name TEXT NOT NULL)",
            ))
            await db.execute(text("INSERT INTO parts (id) VALUES (1)"))
    assert exc_info.value.field_errors == {"name": ["Required field is missing"]}
    assert isinstance(exc_info.value.__cause__, IntegrityError)


async def test_non_database_errors_pass_through(manager):
    with pytest.raises(ValueError):
        async with manager.session():
            raise ValueError("not a record store problem")


async def test_health_check_ok(manager):
    assert await manager.health_check() is True


async def test_close_db_resets_singleton(monkeypatch):
    monkeypatch.setattr(db_module, "db_manager", None)
    db_module.init_db("sqlite+aiosqlite:///:memory:")
    assert db_module.db_manager is not None
    await db_module.close_db()
    assert db_module.db_manager is None
