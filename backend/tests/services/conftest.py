"""Service test fixtures — async DB, seeded records, FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database
    - get_collaborators overridden: SQL repositories on the test DB, fake image lookup
    - db_manager patched for code that reaches it directly (health/ready)
    - Purchase sessions registry emptied after each client test

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for route tests
      (ADR: PostgreSQL-specific features not exercised here)
    - StaticPool: one shared connection so every session sees the same in-memory DB
    - Image lookup always faked: no outbound HTTP from the test suite
"""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from purchase_tool.api.dependencies import Collaborators, get_collaborators
from purchase_tool.api.routes import purchase_sessions as routes_module
from purchase_tool.db.base import Base
from purchase_tool.infrastructure.database import DatabaseSessionManager
from purchase_tool.infrastructure.repositories import (
    SqlAccountRepository, SqlItemRepository, SqlPurchaseRepository,
)
from purchase_tool.models.account import Account as AccountModel
from purchase_tool.models.item import Item as ItemModel
import purchase_tool.infrastructure.database as db_module
from purchase_tool.main import app

from tests.services.fakes import FakeImageLookup


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
async def seed_accounts(test_db):
    """One manager and one regular shopper."""
    manager = AccountModel(name="Acme Buying", is_manager=True)
    shopper = AccountModel(name="Acme Floor", is_manager=False)
    test_db.add_all([manager, shopper])
    await test_db.commit()
    return {"manager": str(manager.id), "shopper": str(shopper.id)}


@pytest.fixture
async def seed_items(test_db):
    """Three catalog items, inserted out of name order."""
    rows = [
        ItemModel(name="Widget", price=Decimal("10.00"), item_type="Hardware", family="Tools"),
        ItemModel(name="Gadget", price=Decimal("5.00"), item_type="Hardware", family="Toys"),
        ItemModel(
            name="Gizmo", price=Decimal("7.50"), item_type="Software", family="Tools",
            description="wide-angle gizmo",
        ),
    ]
    test_db.add_all(rows)
    await test_db.commit()
    return {row.name: str(row.id) for row in rows}


@pytest.fixture
def fake_images():
    return FakeImageLookup(url="https://images.test/photo.jpg")


@pytest.fixture
async def client(test_engine, test_session_factory, fake_images):
    """FastAPI test client with collaborators bound to the test DB."""
    def override_get_collaborators():
        return Collaborators(
            items=SqlItemRepository(test_session_factory),
            accounts=SqlAccountRepository(test_session_factory),
            purchases=SqlPurchaseRepository(test_session_factory),
            images=fake_images,
        )

    app.dependency_overrides[get_collaborators] = override_get_collaborators

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager
    routes_module._purchase_sessions.clear()
