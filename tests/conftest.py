"""
iCanGrow API — Test Configuration (conftest.py)
=================================================

What:  Shared pytest fixtures for the entire test suite.
Why:   Provides reusable test infrastructure (in-memory database, seeded
       profiles, bearer tokens, API client, mocked session).
How:   Every test gets its own in-memory SQLite database behind a real
       Gateway, so services and routes run the same code path as in
       production without a PostgreSQL server.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── gateway: initialized Gateway with every table created
    ├── db: privileged session for service-level tests (commits on exit)
    ├── users: one active, verified profile per role
    ├── auth_headers: factory → {"Authorization": "Bearer ..."} for a profile
    ├── client: HTTPX AsyncClient bound to create_app(gateway)
    └── mock_db_session: AsyncMock session (no database at all)

Note:
    The in-memory database lives on a single shared connection (StaticPool).
    Seed data through `seed(gateway)` and let it commit before making API
    calls; never hold a session open across a request.
"""

import os
from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncGenerator, Callable, Dict
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Override settings for testing BEFORE any icangrow imports
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.pop("DATABASE_ADMIN_URL", None)
os.environ["BCRYPT_ROUNDS"] = "4"  # Fast hashing; production uses 12
os.environ["LOG_LEVEL"] = "WARNING"  # Reduce noise during tests
os.environ["DB_CONNECT_ATTEMPTS"] = "1"

import icangrow.models  # noqa: E402,F401  registers every table on Base.metadata
from icangrow.config import settings  # noqa: E402
from icangrow.database import Base, Gateway  # noqa: E402
from icangrow.lifecycle import ProfileStatus, Role  # noqa: E402
from icangrow.main import create_app  # noqa: E402
from icangrow.models.cultivation import Batch, GrowthCycle, Strain  # noqa: E402
from icangrow.models.profile import Profile  # noqa: E402
from icangrow.security import create_access_token, hash_password  # noqa: E402

TEST_PASSWORD = "Grower123"


# ══════════════════════════════════════════════════════════════════════════
# Seeding Helpers
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def seed(gateway: Gateway):
    """Privileged session that commits when the block exits."""
    async with gateway.session(privileged=True) as session:
        yield session


async def create_profile(
    gateway: Gateway,
    role: Role,
    email: str | None = None,
    status: ProfileStatus = ProfileStatus.ACTIVE,
) -> Profile:
    profile = Profile(
        email=email or f"{role.value}@icangrow.example.com",
        full_name=role.value.replace("_", " ").title(),
        role=role.value,
        status=status.value,
        email_verified=True,
        password_hash=hash_password(TEST_PASSWORD),
        token_version=0,
    )
    async with seed(gateway) as db:
        db.add(profile)
        await db.flush()
    return profile


async def create_batch(gateway: Gateway, created_by=None, name: str = "Batch A1") -> Batch:
    """Strain → growth cycle → batch, the minimum an eBR can be created from."""
    async with seed(gateway) as db:
        strain = Strain(name="Blue Dream", genetics="Hybrid", created_by=created_by)
        db.add(strain)
        await db.flush()

        cycle = GrowthCycle(
            name="Cycle 2024-01",
            facility_location="Greenhouse 1",
            start_date=date(2024, 1, 10),
            status="active",
            strains=[{"strain_id": str(strain.id), "is_primary": True}],
            created_by=created_by,
        )
        db.add(cycle)
        await db.flush()

        batch = Batch(
            name=name,
            strain=strain.name,
            strain_id=strain.id,
            cycle_id=cycle.id,
            room="Flower Room 2",
            plant_count=48,
            current_stage="flowering",
            status="active",
            start_date=date(2024, 1, 15),
            created_by=created_by,
        )
        db.add(batch)
        await db.flush()
    return batch


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def gateway() -> AsyncGenerator[Gateway, None]:
    """
    Initialized gateway over a fresh in-memory database.

    Tables are created straight from the ORM metadata; the Alembic migration
    targets PostgreSQL.
    """
    gw = Gateway(settings)
    gw.initialize()
    async with gw.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield gw
    await gw.dispose()


@pytest_asyncio.fixture
async def db(gateway: Gateway):
    async with gateway.session(privileged=True) as session:
        yield session


@pytest_asyncio.fixture
async def users(gateway: Gateway) -> Dict[str, Profile]:
    """One active profile per role, keyed by role value."""
    return {role.value: await create_profile(gateway, role) for role in Role}


@pytest.fixture
def auth_headers() -> Callable[[Profile], Dict[str, str]]:
    """
    Usage:
        response = await client.get(url, headers=auth_headers(users["admin"]))
    """

    def make(profile: Profile) -> Dict[str, str]:
        token = create_access_token(str(profile.id), profile.email, profile.role, profile.token_version)
        return {"Authorization": f"Bearer {token}"}

    return make


@pytest_asyncio.fixture
async def client(gateway: Gateway) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTPX client against the full application (middleware, handlers, routers).

    ASGITransport does not run the lifespan, so the injected gateway is the
    one the routes see.
    """
    app = create_app(gateway)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def mock_db_session():
    """
    Provides a mock async database session.

    Usage:
        async def test_get_lot(mock_db_session):
            result = MagicMock()
            result.scalar_one_or_none.return_value = None
            mock_db_session.execute.return_value = result
            with pytest.raises(NotFoundError):
                await inventory_service.get_lot(mock_db_session, lot_id)
    """
    session = AsyncMock()
    session.execute = AsyncMock()
    session.flush = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.close = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def make_batch(gateway: Gateway) -> Callable:
    """
    Usage:
        batch = await make_batch(name="Batch B2")
    """

    async def make(name: str = "Batch A1", created_by=None) -> Batch:
        return await create_batch(gateway, created_by=created_by, name=name)

    return make
