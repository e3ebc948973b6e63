"""Shared test fixtures for all test groups."""

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.auth import CurrentUser
from app.db.base import Base


@pytest.fixture
def database_url(tmp_path) -> str:
    """File-backed SQLite database, private to one test."""
    return f"sqlite+aiosqlite:///{tmp_path / 'freight_erp_test.db'}"


@pytest.fixture
async def engine(database_url: str) -> AsyncEngine:
    """Create the schema, seed complexity criteria and set the global session factory.

    Services under test receive the session factory directly; the global one
    is only needed by seed_complexity_criteria().
    """
    import app.db.base as db_mod

    engine = create_async_engine(database_url, echo=False)

    # Import all models so metadata is populated
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    db_mod._engine = engine
    db_mod._session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    from app.db.seed import seed_complexity_criteria

    await seed_complexity_criteria()

    yield engine

    db_mod._engine = None
    db_mod._session_factory = None
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def sales_user() -> CurrentUser:
    return CurrentUser(user_id="sales-001", role="sales")


@pytest.fixture
def engineer() -> CurrentUser:
    return CurrentUser(user_id="eng-001", role="engineer")


@pytest.fixture
def manager() -> CurrentUser:
    return CurrentUser(user_id="mgr-001", role="manager")


@pytest.fixture
def heavy_cargo() -> dict:
    """Cargo scoring 50: heavy (20), over width (15), special permits (15)."""
    return {
        "cargo_weight_kg": 45000,
        "cargo_width_m": 3.2,
        "requires_special_permit": True,
    }


@pytest.fixture
def light_cargo() -> dict:
    """Cargo scoring 10: new route only."""
    return {"cargo_weight_kg": 8000, "is_new_route": True}
