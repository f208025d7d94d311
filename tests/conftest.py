"""
Pytest configuration and fixtures
"""
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from app.core.config import Settings
from app.main import create_app
from app.services.evaluation_service import EvaluationService
from app.store.evaluation_store import EvaluationStore

from .factories import INDEX_HTML


@pytest.fixture
def database_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'evaluations.db'}"


@pytest_asyncio.fixture
async def store(database_url):
    async with EvaluationStore(database_url) as store:
        yield store


@pytest.fixture
def service(store):
    return EvaluationService(store)


@pytest.fixture
def static_dir(tmp_path):
    public = tmp_path / "public"
    public.mkdir()
    (public / "index.html").write_text(INDEX_HTML)
    (public / "app.js").write_text("console.log('evaluations');")
    return public


@pytest.fixture
def settings(database_url, static_dir):
    return Settings(database_url=database_url, static_dir=str(static_dir))


@pytest.fixture
def client(settings):
    """Client running the app lifespan, so the store is open"""
    with TestClient(create_app(settings)) as client:
        yield client

