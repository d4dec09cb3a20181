"""Shared fixtures: in-memory database, callers, signed tokens, API client."""
import os
import time
import uuid

# Settings are read once at import; configure before any safespace import.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SUPABASE_URL"] = "https://project.supabase.test"
os.environ["SUPABASE_SERVICE_KEY"] = "service-role-key"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret-for-safespace-suite-0123456789"

import httpx
import jwt
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from safespace.auth import Caller, Identity
from safespace.database import Base
from safespace.models import Specialist
from safespace.services.object_store import ObjectStore

JWT_SECRET = os.environ["SUPABASE_JWT_SECRET"]
SIGNED_TOKEN = "signed-token-abc"


def make_token(
    user_id: uuid.UUID | None = None,
    email: str | None = None,
    full_name: str | None = None,
    expires_in: int = 3600,
    secret: str = JWT_SECRET,
    audience: str = "authenticated",
) -> str:
    now = int(time.time())
    payload = {
        "sub": str(user_id or uuid.uuid4()),
        "aud": audience,
        "role": "authenticated",
        "iat": now,
        "exp": now + expires_in,
    }
    if email:
        payload["email"] = email
    if full_name:
        payload["user_metadata"] = {"full_name": full_name}
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(**kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(**kwargs)}"}


def make_caller(specialist: Specialist | None = None, email: str | None = None) -> Caller:
    email = email or (specialist.email if specialist is not None else "user@example.com")
    return Caller(identity=Identity(user_id=uuid.uuid4(), email=email), specialist=specialist)


@pytest_asyncio.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def add_specialist(session_factory):
    """Insert a committed directory entry and return it."""
    async def _add(email: str, fullname: str = "Dr. Test", is_verified: bool = True) -> Specialist:
        async with session_factory() as session:
            specialist = Specialist(email=email, fullname=fullname, is_verified=is_verified)
            session.add(specialist)
            await session.commit()
            return specialist
    return _add


class StorageRecorder:
    """httpx.MockTransport handler imitating the Supabase Storage API."""

    def __init__(self):
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.startswith("/storage/v1/object/sign/"):
            key = path.removeprefix("/storage/v1/object/sign/")
            return httpx.Response(200, json={"signedURL": f"/object/sign/{key}?token={SIGNED_TOKEN}"})
        if path.startswith("/storage/v1/object/"):
            return httpx.Response(200, json={"Key": path.removeprefix("/storage/v1/object/")})
        return httpx.Response(404, json={"error": "not found"})


@pytest.fixture
def storage():
    return StorageRecorder()


@pytest.fixture
def object_store(storage):
    return ObjectStore(
        base_url="https://project.supabase.test",
        service_key="service-role-key",
        bucket="avatars",
        client=httpx.AsyncClient(transport=httpx.MockTransport(storage)),
    )


@pytest_asyncio.fixture
async def app(session_factory, object_store):
    from safespace.database import get_db
    from safespace.main import app as fastapi_app
    from safespace.services.events import RequestEventBroker

    async def override_get_db():
        async with session_factory() as session:
            yield session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.state.events = RequestEventBroker(queue_size=10)
    fastapi_app.state.object_store = object_store
    yield fastapi_app
    fastapi_app.dependency_overrides.clear()
    await object_store.aclose()


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
