"""
tests/conftest.py -- Shared test fixtures for UserAuth.

This module provides:
  - make_settings(): Settings with fixed test secrets and a cheap bcrypt cost
  - store / hasher / tokens / sessions: unit-level fixtures on a private
    in-memory database
  - api_client: TestClient over create_app() for integration tests
  - new_user: factory that registers an account through the API

Design: each integration app gets a uniquely named shared-memory SQLite URI
(file:name?mode=memory&cache=shared&uri=true), so apps built in the same
process never see each other's users. UserStore runs in-memory URLs on a
StaticPool, one connection shared by the thread-pool workers that execute
route handlers.

bcrypt_rounds=4 is bcrypt's minimum. It keeps each hash in the millisecond
range so the suites stay fast; the production default is 10.
"""

from __future__ import annotations

import uuid
from collections.abc import Callable, Generator

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from auth.passwords import PasswordHasher
from auth.sessions import SessionManager
from auth.store import UserStore
from auth.tokens import TokenService
from core.config import Settings

TEST_ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
TEST_REFRESH_SECRET = "test-refresh-secret-0123456789abcdef012345678"
TEST_PASSWORD = "pw123"


def make_settings(**overrides) -> Settings:
    """Build Settings for tests. Keyword overrides win over the test defaults."""
    values = {
        "debug": False,
        "access_token_secret": TEST_ACCESS_SECRET,
        "refresh_token_secret": TEST_REFRESH_SECRET,
        "bcrypt_rounds": 4,
        "database_url": "sqlite:///:memory:",
    }
    values.update(overrides)
    return Settings(**values)


def shared_memory_url(name: str) -> str:
    return f"sqlite:///file:{name}_{uuid.uuid4().hex}?mode=memory&cache=shared&uri=true"


# ---------------------------------------------------------------------------
# Unit fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def store() -> Generator[UserStore, None, None]:
    s = UserStore("sqlite:///:memory:")
    yield s
    s.close()


@pytest.fixture
def hasher() -> PasswordHasher:
    return PasswordHasher(rounds=4)


@pytest.fixture
def tokens(settings: Settings) -> TokenService:
    return TokenService(settings)


@pytest.fixture
def sessions(store: UserStore, hasher: PasswordHasher, tokens: TokenService) -> SessionManager:
    return SessionManager(store, hasher, tokens)


# ---------------------------------------------------------------------------
# Integration fixtures -- one TestClient per test module for speed
# ---------------------------------------------------------------------------


@pytest.fixture(scope="module")
def api_client() -> Generator[TestClient, None, None]:
    """Yield a TestClient over a freshly built app with its own database.

    The real lifespan runs, so routes see real stores and services built from
    the test Settings.
    """
    app = create_app(make_settings(database_url=shared_memory_url("test_api")))
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client


@pytest.fixture
def new_user(api_client: TestClient) -> Callable[..., dict]:
    """Return a factory that registers a unique account and returns its registration body."""

    def _register(**overrides) -> dict:
        suffix = uuid.uuid4().hex[:8]
        body = {
            "name": f"User {suffix}",
            "username": f"user_{suffix}",
            "email": f"{suffix}@example.com",
            "password": TEST_PASSWORD,
            "phone": "555-0100",
            "postalCode": "10115",
        }
        body.update(overrides)
        resp = api_client.post("/user/register", json=body)
        assert resp.status_code == 201, f"Expected 201, got {resp.status_code}: {resp.text}"
        return body

    return _register


@pytest.fixture(scope="module")
def unguarded_client() -> Generator[TestClient, None, None]:
    """Like api_client, but with GUARD_PROFILE_UPLOAD off and a 128-byte upload cap."""
    app = create_app(
        make_settings(
            database_url=shared_memory_url("test_unguarded"),
            guard_profile_upload=False,
            max_upload_bytes=128,
        )
    )
    with TestClient(app, raise_server_exceptions=True) as client:
        yield client
