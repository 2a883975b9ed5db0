from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from functools import lru_cache
from uuid import UUID

import bcrypt
import jwt
from loguru import logger

from app import settings
from app.crud import UserRecord
from app.exceptions import ConfigurationError
from app.permissions import Permission, permissions_from_strings

_REQUIRED_CLAIMS = ("uuid", "bde_uuid", "firstname", "lastname", "iat", "exp")


class AuthenticationFailed(Exception):
    """The token is missing a claim, badly signed or expired."""


@dataclass(frozen=True)
class Claims:
    """Authenticated identity decoded from a bearer token. Lives for one request."""

    uuid: UUID
    bde_uuid: UUID
    firstname: str
    lastname: str
    permissions: frozenset[Permission]
    iat: int


class TokenService:
    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        ttl_seconds: int = 86400,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("A JWT secret is required, set JWT_SECRET")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    def generate_token(self, user: UserRecord) -> str:
        now = datetime.now(tz=timezone.utc)
        payload = {
            "uuid": str(user.uuid),
            "bde_uuid": str(user.bde_uuid),
            "firstname": user.firstname,
            "lastname": user.lastname,
            "permissions": user.permission_names,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self.ttl_seconds)).timestamp()),
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug("Issued token for user {}", user.uuid)
        return token

    def verify_token(self, token: str) -> Claims:
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"require": list(_REQUIRED_CLAIMS)},
            )
        except jwt.ExpiredSignatureError as e:
            raise AuthenticationFailed("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise AuthenticationFailed(f"Invalid token: {e}") from e

        try:
            return Claims(
                uuid=UUID(payload["uuid"]),
                bde_uuid=UUID(payload["bde_uuid"]),
                firstname=payload["firstname"],
                lastname=payload["lastname"],
                permissions=permissions_from_strings(payload.get("permissions") or []),
                iat=int(payload["iat"]),
            )
        except (ValueError, TypeError) as e:
            raise AuthenticationFailed(f"Malformed claims: {e}") from e


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode(), password_hash.encode())
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


@lru_cache
def get_token_service() -> TokenService:
    return TokenService(
        secret_key=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        ttl_seconds=settings.jwt_ttl_seconds,
    )
