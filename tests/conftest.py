"""
Shared pytest fixtures available to every test file automatically.
No imports needed in test files, pytest discovers this by convention.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.auth import TokenService, get_token_service
from app.deps import get_claims, get_optional_claims
from app.errors import register_exception_handlers
from app.routers import auth, booking, events, users

from .factories import TEST_SECRET, make_admin, make_event_manager, make_member

# ---------------------------------------------------------------------------
# App builder used by all client fixtures
# ---------------------------------------------------------------------------


def _bare_app() -> FastAPI:
    app = FastAPI()
    register_exception_handlers(app)
    for r in (auth.router, users.router, events.router, booking.router):
        app.include_router(r)
    app.dependency_overrides[get_token_service] = lambda: TokenService(TEST_SECRET)
    return app


def build_app(claims) -> FastAPI:
    """
    Fresh FastAPI app with the claims dependencies overridden to return
    `claims` unconditionally (pass None for an anonymous caller on
    endpoints where authentication is optional).
    """
    app = _bare_app()

    async def _claims():
        return claims

    app.dependency_overrides[get_claims] = _claims
    app.dependency_overrides[get_optional_claims] = _claims
    return app


# ---------------------------------------------------------------------------
# Keep redis out of the tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def no_events_cache():
    with (
        patch("app.routers.events.get_events_cache", AsyncMock(return_value=None)),
        patch("app.routers.events.set_events_cache", AsyncMock()),
        patch("app.routers.events.invalidate_events_cache", AsyncMock()) as invalidate,
    ):
        yield invalidate


# ---------------------------------------------------------------------------
# Reusable client fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def member_client():
    return TestClient(build_app(make_member()), raise_server_exceptions=True)


@pytest.fixture()
def manager_client():
    return TestClient(build_app(make_event_manager()), raise_server_exceptions=True)


@pytest.fixture()
def admin_client():
    return TestClient(build_app(make_admin()), raise_server_exceptions=True)


@pytest.fixture()
def anon_app():
    """
    Bare app with NO claims overrides.
    Use this when you want the real token checks to run so you can assert 401/400.
    Tokens must be signed with factories.TEST_SECRET.
    """
    return _bare_app()


@pytest.fixture()
def client_factory():
    def _make(claims) -> TestClient:
        return TestClient(build_app(claims), raise_server_exceptions=True)

    return _make
