from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from loguru import logger

from app.auth import Claims
from app.crud import booking_crud, event_crud
from app.deps import get_claims
from app.errors import internal_error
from app.exceptions import BookingAlreadyExists, BookingNotFound, EventNotFound, UserNotFound
from app.policies import can_book_now, can_manage_booking, can_manage_events
from app.schemas import BookingOptions, BookingResponse, EventBookingResponse, EventResponse

router = APIRouter(tags=["bookings"])


def _now() -> datetime:
    return datetime.now(tz=timezone.utc)


async def _fetch_event(
    event_uuid: UUID, missing_status: int, missing_detail: str, action: str
) -> EventResponse:
    """Load the event a booking refers to, mapping a missing one to ``missing_status``."""
    try:
        return await event_crud.get_event(event_uuid)
    except EventNotFound:
        raise HTTPException(status_code=missing_status, detail=missing_detail) from None
    except Exception as e:
        raise internal_error(action, e) from e


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.post(
    "/events/{event_uuid}/bookings/{user_uuid}",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_booking(
    event_uuid: UUID,
    user_uuid: UUID,
    payload: BookingOptions | None = None,
    claims: Claims = Depends(get_claims),
) -> BookingResponse:
    """
    Books ``event_uuid`` for ``user_uuid``.

    Rules:
      - users book for themselves; MANAGE_BOOKINGS books for others of the BDE
      - outside the booking window, only ``force`` lets the booking through
      - ``force`` itself requires MANAGE_EVENTS on the event's BDE
    """
    options = payload or BookingOptions()
    event = await _fetch_event(
        event_uuid,
        status.HTTP_400_BAD_REQUEST,
        "Invalid event UUID specified.",
        "Unable to create booking.",
    )

    if not can_manage_booking(claims, user_uuid, event.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have the permission to create this booking.",
        )

    if options.force and not can_manage_events(claims, event.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to force booking.",
        )

    if not options.force and not can_book_now(event, _now()):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="It is not possible to book this event now.",
        )

    try:
        booking = await booking_crud.create_booking(event_uuid, user_uuid)
    except EventNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Specified event UUID is invalid.",
        ) from None
    except UserNotFound:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Specified user UUID is invalid.",
        ) from None
    except BookingAlreadyExists:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="This booking already exists.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to create booking.", e) from e

    logger.info(
        "Booking created: event={} user={} by={} forced={}",
        event_uuid,
        user_uuid,
        claims.uuid,
        options.force,
    )
    return booking


@router.get(
    "/events/{event_uuid}/bookings/{user_uuid}", response_model=BookingResponse
)
async def get_booking(
    event_uuid: UUID,
    user_uuid: UUID,
    claims: Claims = Depends(get_claims),
) -> BookingResponse:
    event = await _fetch_event(
        event_uuid,
        status.HTTP_404_NOT_FOUND,
        "Event does not exist.",
        "Unable to fetch booking.",
    )

    if not can_manage_booking(claims, user_uuid, event.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to fetch this booking.",
        )

    try:
        return await booking_crud.get_booking(event_uuid, user_uuid)
    except BookingNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This booking does not exist.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to fetch booking.", e) from e


@router.delete(
    "/events/{event_uuid}/bookings/{user_uuid}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def delete_booking(
    event_uuid: UUID,
    user_uuid: UUID,
    claims: Claims = Depends(get_claims),
) -> None:
    event = await _fetch_event(
        event_uuid,
        status.HTTP_404_NOT_FOUND,
        "Event does not exist.",
        "Unable to delete booking.",
    )

    if not can_manage_booking(claims, user_uuid, event.bde_uuid):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to delete this booking.",
        )

    try:
        await booking_crud.delete_booking(event_uuid, user_uuid)
    except BookingNotFound:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="This booking does not exist.",
        ) from None
    except Exception as e:
        raise internal_error("Unable to delete booking.", e) from e

    logger.info("Booking deleted: event={} user={} by={}", event_uuid, user_uuid, claims.uuid)


@router.get("/users/{user_uuid}/bookings", response_model=list[EventBookingResponse])
async def list_user_bookings(
    user_uuid: UUID,
    claims: Claims = Depends(get_claims),
) -> list[EventBookingResponse]:
    """Bookings of a user, restricted to those the caller can manage."""
    try:
        bookings = await booking_crud.list_user_bookings(user_uuid)
    except Exception as e:
        raise internal_error("Unable to fetch bookings.", e) from e

    return [
        b for b in bookings if can_manage_booking(claims, b.user_uuid, b.bde_uuid)
    ]


@router.get("/events/{event_uuid}/bookings", response_model=list[EventBookingResponse])
async def list_event_bookings(
    event_uuid: UUID,
    _: Claims = Depends(get_claims),
) -> list[EventBookingResponse]:
    """
    Bookings of an event, for any authenticated caller.
    NOTE: unlike list_user_bookings, items are not filtered per caller.
    """
    # TODO: decide whether attendee lists should be restricted with
    # can_manage_booking like list_user_bookings does.
    try:
        return await booking_crud.list_event_bookings(event_uuid)
    except Exception as e:
        raise internal_error("Unable to fetch bookings.", e) from e
