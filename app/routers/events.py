from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from app.auth import Claims, TokenService, get_token_service
from app.cache import get_events_cache, invalidate_events_cache, set_events_cache
from app.crud import event_crud
from app.deps import authenticate, get_claims, get_optional_claims, oauth2_scheme
from app.errors import internal_error
from app.exceptions import BdeNotFound, EventNotFound
from app.policies import can_manage_events
from app.schemas import EventPayload, EventResponse

router = APIRouter(prefix="/events", tags=["events"])


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_visible(event: EventResponse, claims: Claims | None) -> bool:
    """Drafts are only visible to callers who can manage the event's BDE."""
    if not event.is_draft:
        return True
    return claims is not None and can_manage_events(claims, event.bde_uuid)


async def _load_events() -> list[EventResponse]:
    cached = await get_events_cache()
    if cached is not None:
        logger.debug("Cache hit for events list")
        return [EventResponse(**e) for e in cached]

    logger.debug("Cache miss for events list")
    events = await event_crud.list_events()
    await set_events_cache([e.model_dump(mode="json") for e in events])
    return events


def _not_found(event_uuid: UUID) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"No event with uuid {event_uuid} exists.",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("", response_model=list[EventResponse])
async def list_events(
    claims: Claims | None = Depends(get_optional_claims),
) -> list[EventResponse]:
    """
    Lists every public event, plus the drafts the caller can manage.
    Authentication is optional; an invalid token counts as anonymous.
    """
    try:
        events = await _load_events()
    except Exception as e:
        raise internal_error("Unable to list events.", e) from e

    return [e for e in events if _is_visible(e, claims)]


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    payload: EventPayload,
    claims: Claims = Depends(get_claims),
) -> EventResponse:
    if not can_manage_events(claims, payload.bde):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to create this event.",
        )

    try:
        event = await event_crud.create_event(payload)
    except BdeNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Given bde UUID does not exist.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to create an event.", e) from e

    logger.info("Event {} created in BDE {} by {}", event.event_uuid, event.bde_uuid, claims.uuid)
    await invalidate_events_cache()
    return event


@router.get("/{event_uuid}", response_model=EventResponse)
async def get_event(
    event_uuid: UUID,
    token: str | None = Depends(oauth2_scheme),
    token_service: TokenService = Depends(get_token_service),
) -> EventResponse:
    """Public events need no token. Drafts require permission to manage their BDE."""
    try:
        event = await event_crud.get_event(event_uuid)
    except EventNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Not found"
        ) from None
    except Exception as e:
        raise internal_error("Unable to fetch this event.", e) from e

    if event.is_draft:
        claims = authenticate(token, token_service)
        if not can_manage_events(claims, event.bde_uuid):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You do not have the permission to access this resource.",
            )

    return event


@router.patch("/{event_uuid}", response_model=EventResponse)
async def patch_event(
    event_uuid: UUID,
    payload: EventPayload,
    claims: Claims = Depends(get_claims),
) -> EventResponse:
    try:
        current = await event_crud.get_event(event_uuid)
    except EventNotFound:
        raise _not_found(event_uuid) from None
    except Exception as e:
        raise internal_error("Unable to patch the event.", e) from e

    # Moving an event to another BDE requires managing both BDEs
    if payload.bde != current.bde_uuid and not can_manage_events(claims, payload.bde):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to move this event to the given BDE.",
        )
    if not can_manage_events(claims, current.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to patch this event.",
        )

    try:
        event = await event_crud.update_event(event_uuid, payload)
    except EventNotFound:
        raise _not_found(event_uuid) from None
    except BdeNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"No BDE with UUID {payload.bde} exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to patch the event.", e) from e

    logger.info("Event {} patched by {}", event_uuid, claims.uuid)
    await invalidate_events_cache()
    return event


@router.delete("/{event_uuid}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event_uuid: UUID,
    claims: Claims = Depends(get_claims),
) -> None:
    try:
        current = await event_crud.get_event(event_uuid)
    except EventNotFound:
        raise _not_found(event_uuid) from None
    except Exception as e:
        raise internal_error("Unable to delete the event.", e) from e

    if not can_manage_events(claims, current.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to delete this event.",
        )

    try:
        await event_crud.delete_event(event_uuid)
    except EventNotFound:
        raise _not_found(event_uuid) from None
    except Exception as e:
        raise internal_error("Unable to delete the event.", e) from e

    logger.info("Event {} deleted by {}", event_uuid, claims.uuid)
    await invalidate_events_cache()
