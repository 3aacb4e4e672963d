"""Shared fixtures for package feed API tests.

Each test gets its own composition root over an in-memory SQLite catalog and
a temporary storage directory, and an async httpx client bound to the app.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import pytest_asyncio
from feed_core.composition import Capability, CompositionRoot
from feed_core.config import FeedSettings
from feed_core.database import create_tables, dispose_engines
from httpx import ASGITransport, AsyncClient

from feed_api.config import APISettings
from feed_api.dependencies import dispose_composition, get_settings, init_composition
from feed_api.main import create_app


@pytest.fixture()
def test_settings() -> APISettings:
    """Return API settings suitable for testing."""
    return APISettings(debug=True, create_tables=False)


@pytest.fixture()
def feed_settings(tmp_path: Path) -> FeedSettings:
    return FeedSettings(
        database={"type": "sqlite", "connection_string": "sqlite+aiosqlite:///:memory:"},
        storage={"type": "filesystem", "path": str(tmp_path / "packages")},
        search={"type": "database"},
    )


async def _prepare_root(root: CompositionRoot) -> None:
    async with root.create_scope() as scope:
        await create_tables(scope.get(Capability.DATABASE_CONTEXT).engine)


@pytest_asyncio.fixture()
async def composition(feed_settings: FeedSettings):
    """Initialise the process-wide composition root for one test."""
    root = init_composition(feed_settings)
    await _prepare_root(root)
    yield root
    await dispose_composition()
    await dispose_engines()


@pytest.fixture()
def app(test_settings: APISettings, composition: CompositionRoot):
    """Create a FastAPI app bound to the test composition root."""
    application = create_app()
    application.dependency_overrides[get_settings] = lambda: test_settings
    return application


@pytest_asyncio.fixture()
async def client(app) -> AsyncClient:
    """Yield an async httpx client bound to the test app.

    ASGITransport does not run the lifespan; the ``composition`` fixture
    stands in for startup.
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
