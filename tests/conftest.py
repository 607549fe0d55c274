"""
Shared test fixtures for the Depot test suite.

Each test gets a fresh in-memory SQLite database (aiosqlite + StaticPool)
and seeded admin / editor / worker accounts with ready-made auth headers.
"""

import os
import sys
from collections.abc import AsyncGenerator

import pytest

# Ensure project root is importable
ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

# Override environment BEFORE importing application modules
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["CORS_ORIGINS"] = '["*"]'
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-not-for-production"

from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from depot.api.v1.deps import get_db
from depot.core.security import create_access_token, get_password_hash
from depot.db.base import Base
from depot.main import app
from depot.models.branch import Branch
from depot.models.product import Product
from depot.models.user import User

TEST_PASSWORD = "secret123"

# bcrypt is slow; hash once for every seeded account
_PASSWORD_HASH = get_password_hash(TEST_PASSWORD)


@pytest.fixture
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """Fresh database per test; tables created before and dropped after."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture(autouse=True)
def override_get_db(session_factory):
    async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture
async def async_client() -> AsyncGenerator[AsyncClient, None]:
    """Return a httpx AsyncClient wired to the app."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Return a raw database session for direct queries in tests."""
    async with session_factory() as session:
        yield session


# ── Seeded accounts ─────────────────────────────────────────────────
async def make_user(
    session: AsyncSession,
    username: str,
    position: str = "worker",
    branch: str | None = None,
    is_active: bool = True,
) -> User:
    user = User(
        username=username,
        hashed_password=_PASSWORD_HASH,
        position=position,
        branch=branch,
        is_active=is_active,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


@pytest.fixture
def user_factory(db_session: AsyncSession):
    """``await user_factory("name", position=..., branch=...)``."""

    async def _make(username: str, **kwargs) -> User:
        return await make_user(db_session, username, **kwargs)

    return _make


@pytest.fixture
async def admin_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "admin", position="admin")


@pytest.fixture
async def editor_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "editor", position="editor")


@pytest.fixture
async def worker_user(db_session: AsyncSession) -> User:
    return await make_user(db_session, "worker", branch="Test Branch")


@pytest.fixture
async def other_worker(db_session: AsyncSession) -> User:
    return await make_user(db_session, "worker2", branch="Downtown")


@pytest.fixture
def admin_headers(admin_user: User) -> dict[str, str]:
    return auth_headers(admin_user)


@pytest.fixture
def editor_headers(editor_user: User) -> dict[str, str]:
    return auth_headers(editor_user)


@pytest.fixture
def worker_headers(worker_user: User) -> dict[str, str]:
    return auth_headers(worker_user)


@pytest.fixture
def other_worker_headers(other_worker: User) -> dict[str, str]:
    return auth_headers(other_worker)


# ── Catalogue ───────────────────────────────────────────────────────
@pytest.fixture
async def product(db_session: AsyncSession, admin_user: User) -> Product:
    item = Product(
        name="Tomatoes",
        category="food",
        unit="kg",
        price=2.5,
        supplier="Fresh Farms",
        created_by=admin_user.id,
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest.fixture
async def second_product(db_session: AsyncSession, admin_user: User) -> Product:
    item = Product(
        name="Dish Soap",
        category="cleaning",
        unit="bottles",
        price=4.0,
        created_by=admin_user.id,
    )
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item


@pytest.fixture
async def branch(db_session: AsyncSession, admin_user: User) -> Branch:
    item = Branch(name="Test Branch", description="Main street", created_by=admin_user.id)
    db_session.add(item)
    await db_session.commit()
    await db_session.refresh(item)
    return item
