from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from app.auth import AuthenticationFailed, Claims, TokenService, get_token_service

# auto_error=False: a missing token must be answered by us, not by FastAPI,
# and some endpoints accept anonymous callers. BDE permissions travel inside
# the token, they are not OAuth2 scopes.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def authenticate(token: str | None, token_service: TokenService) -> Claims:
    """Authenticate a bearer token. Missing or invalid tokens yield 401."""
    if not token:
        raise _unauthorized("You must authenticate.")
    try:
        return token_service.verify_token(token)
    except AuthenticationFailed:
        raise _unauthorized("The given token is invalid.") from None


async def get_claims(
    token: str | None = Depends(oauth2_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> Claims:
    return authenticate(token, token_service)


async def get_optional_claims(
    token: str | None = Depends(oauth2_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> Claims | None:
    """
    Like get_claims, but anonymous callers get None.
    An invalid token is handled exactly like no token at all.
    """
    if not token:
        return None
    try:
        return token_service.verify_token(token)
    except AuthenticationFailed:
        return None
