"""
Tests for app/auth.py (tokens and password hashing) and the /auth/token endpoint.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import jwt
import pytest
from fastapi.testclient import TestClient

from app.auth import (
    AuthenticationFailed,
    TokenService,
    check_password,
    hash_password,
)
from app.exceptions import UserNotFound
from app.permissions import Permission, PermissionName

from .factories import BDE_ID, MEMBER_ID, TEST_SECRET, token_for, user_record

CRUD_PATH = "app.routers.auth.user_crud"
PASSWORD = "correct horse battery"


class TestTokenService:
    def test_round_trip_keeps_identity(self):
        user = user_record(
            permissions=[PermissionName.MANAGE_EVENTS, PermissionName.MANAGE_BOOKINGS]
        )
        claims = TokenService(TEST_SECRET).verify_token(token_for(user))
        assert claims.uuid == MEMBER_ID
        assert claims.bde_uuid == BDE_ID
        assert claims.firstname == "Test"
        assert claims.lastname == "User"
        assert claims.permissions == {
            Permission(PermissionName.MANAGE_EVENTS),
            Permission(PermissionName.MANAGE_BOOKINGS),
        }

    def test_token_carries_expiry(self):
        token = TokenService(TEST_SECRET, ttl_seconds=120).generate_token(user_record())
        payload = jwt.decode(token, TEST_SECRET, algorithms=["HS256"])
        assert payload["exp"] - payload["iat"] == 120
        assert payload["permissions"] == []

    def test_expired_token_is_rejected(self):
        token = token_for(user_record(), ttl_seconds=-5)
        with pytest.raises(AuthenticationFailed, match="expired"):
            TokenService(TEST_SECRET).verify_token(token)

    def test_wrong_secret_is_rejected(self):
        token = TokenService("someone-else").generate_token(user_record())
        with pytest.raises(AuthenticationFailed):
            TokenService(TEST_SECRET).verify_token(token)

    def test_tampered_token_is_rejected(self):
        header, _, signature = token_for(user_record()).split(".")
        admin = user_record(permissions=[PermissionName.ALL])
        forged_payload = token_for(admin).split(".")[1]
        tampered = ".".join([header, forged_payload, signature])
        with pytest.raises(AuthenticationFailed):
            TokenService(TEST_SECRET).verify_token(tampered)

    def test_missing_claim_is_rejected(self):
        token = jwt.encode(
            {"uuid": str(MEMBER_ID), "iat": 0, "exp": 2**31}, TEST_SECRET, algorithm="HS256"
        )
        with pytest.raises(AuthenticationFailed):
            TokenService(TEST_SECRET).verify_token(token)

    def test_malformed_uuid_claim_is_rejected(self):
        token = jwt.encode(
            {
                "uuid": "not-a-uuid",
                "bde_uuid": str(BDE_ID),
                "firstname": "a",
                "lastname": "b",
                "iat": 0,
                "exp": 2**31,
            },
            TEST_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(AuthenticationFailed, match="Malformed"):
            TokenService(TEST_SECRET).verify_token(token)


class TestPasswords:
    def test_hash_then_check(self):
        hashed = hash_password(PASSWORD)
        assert hashed != PASSWORD
        assert check_password(PASSWORD, hashed)
        assert not check_password("wrong password", hashed)

    def test_hashes_are_salted(self):
        assert hash_password(PASSWORD) != hash_password(PASSWORD)

    def test_non_bcrypt_hash_never_matches(self):
        assert check_password(PASSWORD, "not-a-bcrypt-hash") is False


class TestIssueToken:
    @pytest.fixture()
    def mock_crud(self):
        with patch(CRUD_PATH) as crud:
            yield crud

    def _login(self, anon_app, username, password):
        with TestClient(anon_app) as c:
            return c.post("/auth/token", data={"username": username, "password": password})

    def test_valid_credentials_return_token(self, anon_app, mock_crud):
        user = user_record(password_hash=hash_password(PASSWORD))
        mock_crud.get_user_by_email = AsyncMock(return_value=user)

        resp = self._login(anon_app, user.email, PASSWORD)

        assert resp.status_code == 200
        body = resp.json()
        assert body["token_type"] == "bearer"
        claims = TokenService(TEST_SECRET).verify_token(body["access_token"])
        assert claims.uuid == user.uuid
        mock_crud.get_user_by_email.assert_awaited_once_with(user.email)

    def test_wrong_password_returns_401(self, anon_app, mock_crud):
        user = user_record(password_hash=hash_password(PASSWORD))
        mock_crud.get_user_by_email = AsyncMock(return_value=user)

        resp = self._login(anon_app, user.email, "nope nope nope")

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials."

    def test_unknown_email_returns_401(self, anon_app, mock_crud):
        mock_crud.get_user_by_email = AsyncMock(side_effect=UserNotFound("x"))

        resp = self._login(anon_app, "ghost@example.com", PASSWORD)

        assert resp.status_code == 401
        assert resp.json()["detail"] == "Invalid credentials."

    def test_missing_password_returns_400(self, anon_app, mock_crud):
        with TestClient(anon_app) as c:
            resp = c.post("/auth/token", data={"username": "someone@example.com"})
        assert resp.status_code == 400

    def test_lookup_failure_returns_500(self, anon_app, mock_crud):
        mock_crud.get_user_by_email = AsyncMock(side_effect=RuntimeError("db down"))

        resp = self._login(anon_app, "someone@example.com", PASSWORD)

        assert resp.status_code == 500
        assert "db down" not in resp.json()["detail"]
