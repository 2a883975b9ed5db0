from dataclasses import dataclass, replace
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from app.auth import Claims, hash_password
from app.crud import UserRecord, user_crud
from app.deps import get_claims
from app.errors import internal_error
from app.exceptions import BdeNotFound, UserAlreadyExists, UserNotFound
from app.permissions import Permission, permissions_from_strings
from app.policies import can_add_user, can_manage_permissions
from app.schemas import PermissionsUpdate, UserCreate, UserResponse

router = APIRouter(prefix="/users", tags=["users"])


@dataclass(frozen=True)
class _Grant:
    """Permissions requested for a user that does not exist yet."""

    bde_uuid: UUID
    permissions: frozenset[Permission]


async def _load_caller(claims: Claims) -> UserRecord:
    """
    Reload the caller from the database so that permissions revoked since the
    token was issued no longer apply.
    """
    try:
        return await user_crud.get_user(claims.uuid)
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="The given token is invalid.",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except Exception as e:
        raise internal_error("Unable to authenticate.", e) from e


def _to_response(user: UserRecord) -> UserResponse:
    return UserResponse.model_validate(user, from_attributes=True)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def create_user(
    payload: UserCreate,
    claims: Claims = Depends(get_claims),
) -> UserResponse:
    caller = await _load_caller(claims)

    if not can_add_user(caller, payload.bde):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to add a user to this BDE.",
        )

    requested = permissions_from_strings(payload.permissions)
    if requested and not can_manage_permissions(caller, _Grant(payload.bde, requested)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to grant these permissions.",
        )

    password_hash = await run_in_threadpool(hash_password, payload.password)
    try:
        user = await user_crud.create_user(payload, password_hash)
    except BdeNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Given bde UUID does not exist.",
        ) from None
    except UserAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A user with this email already exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to create user.", e) from e

    logger.info("User {} added to BDE {} by {}", user.uuid, user.bde_uuid, caller.uuid)
    return _to_response(user)


@router.get("/{user_uuid}", response_model=UserResponse)
async def get_user(
    user_uuid: UUID,
    _: Claims = Depends(get_claims),
) -> UserResponse:
    try:
        user = await user_crud.get_user(user_uuid)
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No user with uuid {user_uuid} exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to fetch user.", e) from e
    return _to_response(user)


@router.put("/{user_uuid}/permissions", response_model=UserResponse)
async def set_user_permissions(
    user_uuid: UUID,
    payload: PermissionsUpdate,
    claims: Claims = Depends(get_claims),
) -> UserResponse:
    """
    Replace the permissions of a user.
    The caller must be able to manage the target both before and after the change,
    so nobody can raise a user to their own level.
    """
    caller = await _load_caller(claims)

    try:
        target = await user_crud.get_user(user_uuid)
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No user with uuid {user_uuid} exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to update permissions.", e) from e

    requested = permissions_from_strings(payload.permissions)
    if not can_manage_permissions(caller, target) or not can_manage_permissions(
        caller, replace(target, permissions=requested)
    ):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to manage permissions of this user.",
        )

    try:
        user = await user_crud.set_user_permissions(user_uuid, requested)
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No user with uuid {user_uuid} exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to update permissions.", e) from e

    logger.info(
        "Permissions of {} set to {} by {}", user_uuid, user.permission_names, caller.uuid
    )
    return _to_response(user)
