"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import fakeredis.aioredis
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient


@pytest.fixture
def fake_redis():
    return fakeredis.aioredis.FakeRedis(decode_responses=True)


@pytest.fixture
def api_client(database_url, fake_redis):
    """FastAPI test client with a private SQLite database and fake Redis.

    Initializes the global database via init_db inside the TestClient's
    own event loop so route handlers can use get_session_factory().
    """
    from fastapi import HTTPException

    from app.api.routes import api_router
    from app.core.config import get_settings
    from app.db import close_db, get_redis, init_db
    from app.db.seed import seed_complexity_criteria
    from app.main import generic_exception_handler, http_exception_handler
    from app.middleware.correlation import setup_correlation_middleware

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        # Reset global so init_db creates a fresh engine in THIS loop
        import app.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(database_url)
        await seed_complexity_criteria()
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Freight ERP - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    setup_correlation_middleware(app)

    # Exception handlers (needed for debug_id testing)
    app.exception_handler(HTTPException)(http_exception_handler)
    app.exception_handler(Exception)(generic_exception_handler)

    app.include_router(api_router, prefix="/api")
    app.dependency_overrides[get_redis] = lambda: fake_redis

    with TestClient(app) as client:
        yield client

