"""Pytest configuration and fixtures for schoolhub.

Env is set before schoolhub.main is imported: dev JWT auth, no Redis and
no rate limiting. HTTP tests replace the Firestore repositories and the
realtime channel with the in-memory fakes from tests.fakes via
app.dependency_overrides.
"""

import os
from collections.abc import AsyncIterator, Callable, Iterator
from dataclasses import dataclass

os.environ["AUTH_BACKEND"] = "jwt"
os.environ["SECRET_KEY"] = "test-secret-key-for-schoolhub-tests-only"
os.environ["REDIS_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.pop("FIREBASE_PROJECT_ID", None)

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from schoolhub.core.config import get_settings  # noqa: E402

get_settings.cache_clear()

from schoolhub.api.v1.dependencies import (  # noqa: E402
    get_code_lookup,
    get_message_repo,
    get_profile_repo,
    get_realtime_channel,
    get_school_repo,
)
from schoolhub.infrastructure.security.jwt import create_access_token  # noqa: E402
from schoolhub.main import app  # noqa: E402
from tests.fakes import (  # noqa: E402
    InMemoryCodeLookup,
    InMemoryMessageRepository,
    InMemoryProfileRepository,
    InMemoryRealtimeChannel,
    InMemorySchoolRepository,
)


@dataclass
class FakeStore:
    profiles: InMemoryProfileRepository
    schools: InMemorySchoolRepository
    codes: InMemoryCodeLookup
    messages: InMemoryMessageRepository
    realtime: InMemoryRealtimeChannel


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def store() -> Iterator[FakeStore]:
    """In-memory store and realtime channel wired into the app; overrides cleared afterwards."""
    schools = InMemorySchoolRepository()
    fake = FakeStore(
        profiles=InMemoryProfileRepository(),
        schools=schools,
        codes=InMemoryCodeLookup(schools),
        messages=InMemoryMessageRepository(),
        realtime=InMemoryRealtimeChannel(),
    )
    app.dependency_overrides[get_profile_repo] = lambda: fake.profiles
    app.dependency_overrides[get_school_repo] = lambda: fake.schools
    app.dependency_overrides[get_code_lookup] = lambda: fake.codes
    app.dependency_overrides[get_message_repo] = lambda: fake.messages
    app.dependency_overrides[get_realtime_channel] = lambda: fake.realtime
    yield fake
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Build Authorization headers carrying a dev JWT for the given identity."""

    def _headers(sub: str, email: str | None = None, name: str | None = None) -> dict[str, str]:
        claims: dict[str, str] = {"sub": sub}
        if email:
            claims["email"] = email
        if name:
            claims["full_name"] = name
        return {"Authorization": f"Bearer {create_access_token(claims)}"}

    return _headers
