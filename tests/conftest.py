"""
Pytest configuration and shared fixtures.

Every test gets its own SQLite file through aiosqlite so concurrent sessions
behave like separate connections, and the API is driven through
httpx.AsyncClient on the ASGI app with the database and broker overridden.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("RUN_WORKER", "false")
os.environ.setdefault("PURGE_ENABLED", "false")

from types import SimpleNamespace  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402

from app.api.v1.deps import get_broker  # noqa: E402
from app.db.db import get_db, init_models, make_engine, make_session_factory  # noqa: E402
from app.main import app  # noqa: E402
from app.queue.broker import JobBroker  # noqa: E402
from app.schemas.schemas import ExtractedCategory, ExtractedProduct  # noqa: E402


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'trove.db'}")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def broker(session_factory):
    return JobBroker(session_factory, queue_name="test-extract")


@pytest_asyncio.fixture
async def client(session_factory, broker):
    """API client with the app's database and broker pointed at the test database."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_broker] = lambda: broker

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


class FakeTranscripts:
    """Stands in for TranscriptService."""

    def __init__(self, text="I love this vitamin C serum", error=None):
        self.text = text
        self.error = error
        self.calls = []

    async def get_transcript(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.text


class FakeExtractor:
    """Stands in for GeminiExtractor; returns the same categories for every transcript."""

    def __init__(self, categories=None):
        self.categories = categories if categories is not None else []
        self.seen_categories = []

    async def extract_products(self, transcript, categories):
        self.seen_categories.append([c.name for c in categories])
        return self.categories


class StubGeminiModel:
    """Mimics GenerativeModel.generate_content_async."""

    def __init__(self, text=None, error=None):
        self.text = text
        self.error = error
        self.prompts = []

    async def generate_content_async(self, prompt):
        self.prompts.append(prompt)
        if self.error is not None:
            return _BlockedResponse(self.error)
        return SimpleNamespace(text=self.text)


class _BlockedResponse:
    def __init__(self, error):
        self._error = error

    @property
    def text(self):
        raise self._error


def skincare_extraction(*names):
    names = names or ("Vitamin C Serum",)
    return [
        ExtractedCategory(
            name="skincare",
            products=[
                ExtractedProduct(name=name, category="skincare", description="Brightening serum")
                for name in names
            ],
        )
    ]
