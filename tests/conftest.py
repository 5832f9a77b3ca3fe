"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from uuid import UUID

import pytest
import pytest_asyncio
from fakes import FakeDatabase
from httpx import ASGITransport, AsyncClient

from notekeeper.app import App
from notekeeper.config import Config
from notekeeper.core.core import Core
from notekeeper.core.modules.user.models import User
from notekeeper.web.server import create_fastapi_app

TEST_SECRET = "test-secret-0123456789abcdef0123456789abcdef"


@pytest.fixture
def config() -> Config:
    return Config(
        _env_file=None,
        database_url="mongodb://localhost:27017/notekeeper_test",
        host="127.0.0.1",
        port=8000,
        debug=True,
        access_token_secret=TEST_SECRET,
    )


@pytest.fixture
def database() -> FakeDatabase:
    return FakeDatabase()


@pytest_asyncio.fixture
async def core(config: Config, database: FakeDatabase) -> AsyncGenerator[Core]:
    """Core wired to the in-memory database, with services started."""
    core = Core(config, database)  # type: ignore[arg-type]
    async with core.lifespan():
        yield core


@pytest_asyncio.fixture
async def registered_user(core: Core) -> User:
    """A user with email a@x.com and password 'correct'."""
    return await core.services.user.create_user("Alice", "a@x.com", "correct")


@pytest_asyncio.fixture
async def client(config: Config, database: FakeDatabase) -> AsyncGenerator[AsyncClient]:
    """HTTP client talking to the FastAPI app in-process."""
    app_instance = App(config, database)  # type: ignore[arg-type]
    fastapi_app = create_fastapi_app(app_instance, config)
    # ASGITransport does not run the lifespan, so do its work here
    fastapi_app.state.app = app_instance
    fastapi_app.state.config = config
    async with app_instance.lifespan():
        transport = ASGITransport(app=fastapi_app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as http_client:
            yield http_client


@pytest.fixture
def mock_user() -> User:
    return User(
        id=UUID("87654321-4321-8765-4321-876543218765"),
        name="Test User",
        email="test@example.com",
        password_hash="$2b$12$hashed_password_here",
        created_at=datetime(2025, 1, 1, tzinfo=UTC),
    )
