"""Test fixtures — isolated in-memory databases and recorded dispatches.

Learn: Each test gets a fresh sqlite (aiosqlite) database, created from the
ORM metadata, so API tests run without PostgreSQL. The app's get_db and
get_dispatcher dependencies are overridden; the kiosk link is never
started unless a test builds one itself.
"""

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from expoalerts.api.alerts import get_dispatcher
from expoalerts.db.engine import get_db
from expoalerts.db.models import Base
from expoalerts.main import app


TEST_DB_URL = "sqlite+aiosqlite://"


class RecordingDispatcher:
    """Collects every alert the service dispatches."""

    def __init__(self):
        self.alerts = []

    def dispatch(self, alert) -> bool:
        self.alerts.append(alert)
        return True


def make_token(username: str | None = "jane") -> str:
    payload = {"sub": "42"}
    if username:
        payload["username"] = username
    return jwt.encode(payload, "gateway-secret", algorithm="HS256")


@pytest_asyncio.fixture()
async def db_session():
    """Per-test session on a throwaway in-memory database."""
    engine = create_async_engine(
        TEST_DB_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture()
def dispatcher():
    return RecordingDispatcher()


@pytest_asyncio.fixture()
async def client(db_session, dispatcher):
    """HTTP client with get_db and get_dispatcher overridden."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture()
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture()
def token_for():
    """Build a bearer token for a username (None → no username claim)."""
    return make_token
