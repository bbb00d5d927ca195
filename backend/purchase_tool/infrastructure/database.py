"""Record Store Sessions — async engine, per-call sessions, and SQLAlchemy error translation.

Invariants:
    - Every session rolls back on exception; nothing half-written survives a failed call
    - SQLAlchemy exceptions leave this module only as PersistenceError (a RemoteError),
      so workflows decode them like any other collaborator failure
    - Constraint violations carry page/field errors in the same shape repositories.py
      uses for record problems (missing column -> field error, conflict -> page error)

Design Decisions:
    - db_manager singleton created in the FastAPI lifespan; repositories resolve it at
      call time (ADR: purchase sessions outlive requests, so no request-scoped session)
    - expire_on_commit=False: returned ORM rows are read after the session closes
    - SQLite URLs skip pool sizing: aiosqlite runs on a static pool
"""

import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from sqlalchemy import text
from sqlalchemy.exc import (
    DBAPIError, IntegrityError, OperationalError, SQLAlchemyError,
)
from sqlalchemy.ext.asyncio import (
    AsyncSession, async_sessionmaker, create_async_engine,
)

from purchase_tool.core.errors import PersistenceError

logger = logging.getLogger(__name__)

# sqlite: "NOT NULL constraint failed: items.name"
# postgres: 'null value in column "name" of relation "items" violates not-null constraint'
_NOT_NULL = re.compile(
    r'NOT NULL constraint failed: \w+\.(\w+)|null value in column "(\w+)"',
)


def translate_integrity_error(error: IntegrityError) -> PersistenceError:
    """Constraint violation -> record-service style field/page errors."""
    detail = str(error.orig) if error.orig is not None else str(error)
    missing = _NOT_NULL.search(detail)
    if missing:
        column = missing.group(1) or missing.group(2)
        return PersistenceError(
            detail, "write",
            field_errors={column: ["Required field is missing"]}, http_status=400,
        )
    lowered = detail.lower()
    if "foreign key" in lowered:
        problem = "Referenced record does not exist"
    elif "unique" in lowered or "duplicate key" in lowered:
        problem = "A record with the same values already exists"
    else:
        problem = "Record violates a data constraint"
    return PersistenceError(detail, "write", page_errors=[problem], http_status=409)


def translate_error(error: SQLAlchemyError) -> PersistenceError:
    if isinstance(error, IntegrityError):
        return translate_integrity_error(error)
    if isinstance(error, OperationalError):
        return PersistenceError("record store unreachable", "connect")
    if isinstance(error, DBAPIError):
        return PersistenceError("record store driver error", "query")
    return PersistenceError("record store operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the async engine; hands out sessions that roll back and translate on failure."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        engine_kwargs: dict = {"pool_pre_ping": True}
        if not database_url.startswith("sqlite"):
            engine_kwargs.update(
                pool_size=pool_size, max_overflow=max_overflow, pool_recycle=3600,
            )
        self.engine = create_async_engine(database_url, **engine_kwargs)
        self._session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False,
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            translated = translate_error(e)
            logger.error(
                f"Record store error ({type(e).__name__}): {translated.message}",
                extra={"error_code": translated.code, "operation": translated.operation},
            )
            raise translated from e
        finally:
            await session.close()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
        except PersistenceError as e:
            logger.warning(f"Record store not ready: {e.message}")
            return False
        return True

    async def close(self) -> None:
        await self.engine.dispose()


db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs) -> DatabaseSessionManager:
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)
    return db_manager


async def close_db() -> None:
    global db_manager
    if db_manager is not None:
        await db_manager.close()
        db_manager = None
