from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from fastapi.security import OAuth2PasswordRequestForm
from loguru import logger

from app.auth import TokenService, check_password, get_token_service
from app.crud import user_crud
from app.errors import internal_error
from app.exceptions import UserNotFound
from app.schemas import TokenResponse

router = APIRouter(prefix="/auth", tags=["auth"])


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/token", response_model=TokenResponse)
async def issue_token(
    form: OAuth2PasswordRequestForm = Depends(),
    token_service: TokenService = Depends(get_token_service),
) -> TokenResponse:
    """Exchange an email (as ``username``) and password for a bearer token."""
    try:
        user = await user_crud.get_user_by_email(form.username)
    except UserNotFound:
        raise _invalid_credentials() from None
    except Exception as e:
        raise internal_error("Unable to authenticate.", e) from e

    if not await run_in_threadpool(check_password, form.password, user.password_hash):
        logger.info("Rejected password for user {}", user.uuid)
        raise _invalid_credentials()

    return TokenResponse(access_token=token_service.generate_token(user))
