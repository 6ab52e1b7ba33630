"""Service test fixtures — async DB, seeded catalog + FastAPI test client.

Invariants:
    - Every test gets a fresh in-memory SQLite database with foreign keys ON
    - get_db dependency overridden to use test DB sessions
    - db_manager patched so the readiness probe hits the test engine
    - Seed data: two shoppers (alice, carol), one admin, three products,
      one address per shopper

Design Decisions:
    - SQLite in-memory: fast, no external dependency, sufficient for service
      and route tests (conditional UPDATE and ON CONFLICT behave the same)
    - StaticPool: every session shares the single in-memory connection
    - Concurrency tests use a file-backed SQLite engine instead: each session
      gets its own connection, so asyncio.gather really interleaves two
      transactions against one database
    - Assertions on stock/status go through tests/services/stored_values.py so
      the identity map never hides what is really stored
"""

from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.pool import StaticPool
from httpx import ASGITransport, AsyncClient

from storefront.core.domain_types import UserRole
from storefront.db.base import Base
from storefront.infrastructure.database import (
    DatabaseSessionManager, enable_sqlite_foreign_keys, get_db,
)
import storefront.infrastructure.database as db_module
from storefront.main import app
from storefront.models.address import Address
from storefront.models.product import Product
from storefront.models.user import User


@pytest.fixture
async def test_engine():
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
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
async def client(test_engine, test_session_factory):
    """FastAPI test client with DB dependency overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

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


@pytest.fixture
async def file_engine(tmp_path):
    """File-backed SQLite: one connection per session, shared database file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'storefront.db'}", echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def file_session_factory(file_engine):
    return async_sessionmaker(
        file_engine, class_=AsyncSession, expire_on_commit=False,
    )


# ─── Seed data ───────────────────────────────────────────────────

async def _seed_rows(db: AsyncSession) -> dict:
    alice = User(username="alice", email="alice@example.com")
    carol = User(username="carol", email="carol@example.com")
    admin = User(
        username="admin", email="admin@example.com", role=UserRole.ADMIN.value,
    )
    mug = Product(name="Mug", price=Decimal("9.99"), stock_quantity=10)
    lamp = Product(name="Lamp", price=Decimal("25.00"), stock_quantity=4)
    poster = Product(name="Poster", price=Decimal("5.50"), stock_quantity=1)
    db.add_all([alice, carol, admin, mug, lamp, poster])
    await db.flush()

    alice_address = Address(
        user_id=alice.id, street="1 Main St", city="Springfield",
        postal_code="12345", country="US",
    )
    carol_address = Address(
        user_id=carol.id, street="9 Elm Rd", city="Shelbyville",
        postal_code="54321", country="US",
    )
    db.add_all([alice_address, carol_address])
    await db.commit()

    return {
        "alice": alice, "carol": carol, "admin": admin,
        "mug": mug, "lamp": lamp, "poster": poster,
        "alice_address": alice_address, "carol_address": carol_address,
    }


@pytest.fixture
async def seed(test_db):
    """Users, products and addresses shared by service and route tests.

    Returns a dict keyed by short names: alice, carol, admin, mug (9.99,
    stock 10), lamp (25.00, stock 4), poster (5.50, stock 1),
    alice_address, carol_address.
    """
    return await _seed_rows(test_db)


@pytest.fixture
async def file_seed(file_session_factory):
    """Same rows as seed, written to the file-backed database."""
    async with file_session_factory() as session:
        return await _seed_rows(session)
