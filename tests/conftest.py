"""
Shared test fixtures.

Uses an in-memory SQLite database (via aiosqlite) so tests run without
Docker / PostgreSQL / Redis.  The production models are created as-is;
``StaticPool`` keeps every session on the one in-memory connection.  Redis
is replaced by :class:`FakeRedis`, which implements just the SET NX EX and
EVAL calls the per-booking lock makes.
"""

from datetime import date
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from src.domain.enums import DriverStatus, UserRole
from src.infrastructure.database import Base
from src.infrastructure.models import (
    BookingModel,
    DriverModel,
    PricingModel,
    UserModel,
    WasteCategoryModel,
)


# ── Test DB (SQLite in-memory) ────────────────────────────────────────

TEST_DB_URL = "sqlite+aiosqlite:///:memory:"

CUSTOMER_ID = 1
OTHER_CUSTOMER_ID = 2
ADMIN_ID = 3
DRIVER_ID = 4
UNAPPROVED_DRIVER_ID = 5
SUPER_ADMIN_ID = 6

PLASTIC = 1  # 40 .. 60 LKR / kg
PAPER = 2  # 25 .. 35 LKR / kg
GLASS = 3  # no pricing row
RETIRED = 4  # inactive category


def actor_headers(user_id: int, role: UserRole) -> dict[str, str]:
    return {"X-Actor-Id": str(user_id), "X-Actor-Role": role.value}


CUSTOMER = actor_headers(CUSTOMER_ID, UserRole.CUSTOMER)
OTHER_CUSTOMER = actor_headers(OTHER_CUSTOMER_ID, UserRole.CUSTOMER)
ADMIN = actor_headers(ADMIN_ID, UserRole.ADMIN)
SUPER_ADMIN = actor_headers(SUPER_ADMIN_ID, UserRole.SUPER_ADMIN)
DRIVER = actor_headers(DRIVER_ID, UserRole.DRIVER)
UNAPPROVED_DRIVER = actor_headers(UNAPPROVED_DRIVER_ID, UserRole.DRIVER)


class FakeRedis:
    """In-process stand-in for the two Redis calls ``DistributedLock`` makes."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.store:
            return None
        self.store[key] = value
        return True

    async def eval(self, script, numkeys, key, token):
        if self.store.get(key) == token:
            del self.store[key]
            return 1
        return 0


async def _seed(session: AsyncSession) -> None:
    session.add_all(
        [
            UserModel(id=CUSTOMER_ID, full_name="Kasuni Silva", email="kasuni@example.com"),
            UserModel(id=OTHER_CUSTOMER_ID, full_name="Ruwan Fernando", email="ruwan@example.com"),
            UserModel(id=ADMIN_ID, full_name="Nimal Perera", email="admin@example.com", role="ADMIN"),
            UserModel(id=DRIVER_ID, full_name="Saman Kumara", email="saman@example.com", role="DRIVER"),
            UserModel(id=UNAPPROVED_DRIVER_ID, full_name="Lahiru D", email="lahiru@example.com", role="DRIVER"),
            UserModel(id=SUPER_ADMIN_ID, full_name="Root", email="root@example.com", role="SUPER_ADMIN"),
        ]
    )
    session.add_all(
        [
            DriverModel(
                id=DRIVER_ID,
                full_name="Saman Kumara",
                approved=True,
                status=DriverStatus.ONLINE.value,
            ),
            DriverModel(id=UNAPPROVED_DRIVER_ID, full_name="Lahiru D", approved=False),
            WasteCategoryModel(id=PLASTIC, name="Plastic"),
            WasteCategoryModel(id=PAPER, name="Paper"),
            WasteCategoryModel(id=GLASS, name="Glass"),
            WasteCategoryModel(id=RETIRED, name="Styrofoam", is_active=False),
        ]
    )
    await session.flush()
    session.add_all(
        [
            PricingModel(waste_category_id=PLASTIC, min_price_lkr_per_kg=40, max_price_lkr_per_kg=60),
            PricingModel(waste_category_id=PAPER, min_price_lkr_per_kg=25, max_price_lkr_per_kg=35),
        ]
    )
    await session.commit()


# ── Fixtures ──────────────────────────────────────────────────────────


@pytest_asyncio.fixture
async def test_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with the schema and reference rows."""
    engine = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        await _seed(session)

    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def make_booking(session_factory):
    """Insert a booking row with any raw status, bypassing the API."""

    async def _make(
        status: str = "CREATED",
        *,
        user_id: int = CUSTOMER_ID,
        driver_id: Optional[int] = None,
        waste_category_id: int = PLASTIC,
        actual_weight_kg: Optional[float] = None,
        final_amount_lkr: Optional[float] = None,
        skip_checks: bool = False,
    ) -> int:
        async with session_factory() as session:
            if skip_checks:
                await session.execute(text("PRAGMA ignore_check_constraints = ON"))
            booking = BookingModel(
                user_id=user_id,
                driver_id=driver_id,
                waste_category_id=waste_category_id,
                status=status,
                actual_weight_kg=actual_weight_kg,
                final_amount_lkr=final_amount_lkr,
                address_line1="12 Galle Road",
                city="Colombo",
                postal_code="00300",
                scheduled_date=date(2026, 11, 2),
                scheduled_time_slot="09:00-12:00",
            )
            session.add(booking)
            await session.commit()
            if skip_checks:
                await session.execute(text("PRAGMA ignore_check_constraints = OFF"))
            return booking.id

    return _make


@pytest_asyncio.fixture
async def client(session_factory, fake_redis) -> AsyncGenerator[AsyncClient, None]:
    """AsyncClient backed by SQLite and the in-process Redis fake."""
    from src.api.app import create_app
    from src.api.dependencies import get_db
    from src.api.middleware import limiter
    from src.infrastructure.redis_client import get_redis

    async def _test_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _test_redis():
        return fake_redis

    limiter.reset()
    app = create_app()
    app.dependency_overrides[get_db] = _test_db
    app.dependency_overrides[get_redis] = _test_redis

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
