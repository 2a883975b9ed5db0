from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID, uuid4

from tortoise.exceptions import IntegrityError
from tortoise.transactions import in_transaction

from app.exceptions import (
    BdeNotFound,
    BookingAlreadyExists,
    BookingNotFound,
    EventNotFound,
    UserAlreadyExists,
    UserNotFound,
)
from app.models import Bde, Booking, Event, User
from app.permissions import Permission, permissions_from_strings
from app.schemas import (
    BookingResponse,
    EventBookingResponse,
    EventPayload,
    EventResponse,
    UserCreate,
)


@dataclass(frozen=True)
class UserRecord:
    """Detached view of a user row, carrying what permission checks need."""

    uuid: UUID
    email: str
    password_hash: str
    firstname: str
    lastname: str
    bde_uuid: UUID
    permissions: frozenset[Permission]

    @property
    def permission_names(self) -> list[str]:
        return sorted(p.name for p in self.permissions)


def _user_record(inst: User) -> UserRecord:
    return UserRecord(
        uuid=inst.uuid,
        email=inst.email,
        password_hash=inst.password_hash,
        firstname=inst.firstname,
        lastname=inst.lastname,
        bde_uuid=inst.bde_id,  # type: ignore[attr-defined]
        permissions=permissions_from_strings(inst.permission_names),
    )


def _event_booking(b: Booking) -> EventBookingResponse:
    """Flatten a booking and its prefetched event into one response."""
    event = EventResponse.model_validate(b.event, from_attributes=True)
    return EventBookingResponse(**event.model_dump(), user_uuid=b.user_id)  # type: ignore[attr-defined]


async def _require_bde(bde_uuid: UUID) -> None:
    if not await Bde.exists(uuid=bde_uuid):
        raise BdeNotFound(f"No BDE with UUID {bde_uuid} exists")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventCRUD:
    async def create_event(self, payload: EventPayload) -> EventResponse:
        await _require_bde(payload.bde)
        inst = await Event.create(
            uuid=uuid4(),
            bde_id=payload.bde,
            name=payload.name,
            is_draft=payload.is_draft,
            booking_start=payload.booking_start,
            booking_end=payload.booking_end,
            event_date=payload.event_date,
        )
        return EventResponse.model_validate(inst, from_attributes=True)

    async def get_event(self, event_uuid: UUID) -> EventResponse:
        inst = await Event.get_or_none(uuid=event_uuid)
        if not inst:
            raise EventNotFound(f"No event with UUID {event_uuid} exists")
        return EventResponse.model_validate(inst, from_attributes=True)

    async def list_events(self) -> list[EventResponse]:
        events = await Event.all()
        return [EventResponse.model_validate(e, from_attributes=True) for e in events]

    async def update_event(self, event_uuid: UUID, payload: EventPayload) -> EventResponse:
        """Replace every editable field of an existing event."""
        async with in_transaction():
            inst = await Event.filter(uuid=event_uuid).select_for_update().first()
            if not inst:
                raise EventNotFound(f"No event with UUID {event_uuid} exists")
            if payload.bde != inst.bde_id:  # type: ignore[attr-defined]
                await _require_bde(payload.bde)

            inst.bde_id = payload.bde  # type: ignore[attr-defined]
            inst.name = payload.name
            inst.is_draft = payload.is_draft
            inst.booking_start = payload.booking_start  # type: ignore[assignment]
            inst.booking_end = payload.booking_end  # type: ignore[assignment]
            inst.event_date = payload.event_date  # type: ignore[assignment]
            await inst.save()

        return EventResponse.model_validate(inst, from_attributes=True)

    async def delete_event(self, event_uuid: UUID) -> None:
        deleted = await Event.filter(uuid=event_uuid).delete()
        if not deleted:
            raise EventNotFound(f"No event with UUID {event_uuid} exists")


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingCRUD:
    async def create_booking(self, event_uuid: UUID, user_uuid: UUID) -> BookingResponse:
        """
        Persist a booking after validating:
          - the event and the user exist
          - the user has not already booked this event
        """
        if not await Event.exists(uuid=event_uuid):
            raise EventNotFound(f"No event with UUID {event_uuid} exists")
        if not await User.exists(uuid=user_uuid):
            raise UserNotFound(f"No user with UUID {user_uuid} exists")

        try:
            async with in_transaction():
                if await Booking.exists(event_id=event_uuid, user_id=user_uuid):
                    raise BookingAlreadyExists(
                        f"User {user_uuid} already booked event {event_uuid}"
                    )
                inst = await Booking.create(event_id=event_uuid, user_id=user_uuid)
        except IntegrityError as e:
            # Lost a race against a concurrent insert of the same pair
            raise BookingAlreadyExists(
                f"User {user_uuid} already booked event {event_uuid}"
            ) from e

        return BookingResponse.model_validate(inst, from_attributes=True)

    async def get_booking(self, event_uuid: UUID, user_uuid: UUID) -> BookingResponse:
        inst = await Booking.get_or_none(event_id=event_uuid, user_id=user_uuid)
        if not inst:
            raise BookingNotFound(
                f"No booking of user {user_uuid} for event {event_uuid} exists"
            )
        return BookingResponse.model_validate(inst, from_attributes=True)

    async def list_user_bookings(self, user_uuid: UUID) -> list[EventBookingResponse]:
        bookings = await Booking.filter(user_id=user_uuid).prefetch_related("event")
        return [_event_booking(b) for b in bookings]

    async def list_event_bookings(self, event_uuid: UUID) -> list[EventBookingResponse]:
        bookings = await Booking.filter(event_id=event_uuid).prefetch_related("event")
        return [_event_booking(b) for b in bookings]

    async def delete_booking(self, event_uuid: UUID, user_uuid: UUID) -> None:
        deleted = await Booking.filter(event_id=event_uuid, user_id=user_uuid).delete()
        if not deleted:
            raise BookingNotFound(
                f"No booking of user {user_uuid} for event {event_uuid} exists"
            )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCRUD:
    async def create_user(self, payload: UserCreate, password_hash: str) -> UserRecord:
        await _require_bde(payload.bde)
        if await User.exists(email=payload.email):
            raise UserAlreadyExists(f"A user with email {payload.email} already exists")

        names = sorted(p.name for p in permissions_from_strings(payload.permissions))
        try:
            inst = await User.create(
                uuid=uuid4(),
                email=payload.email,
                password_hash=password_hash,
                firstname=payload.firstname,
                lastname=payload.lastname,
                bde_id=payload.bde,
                permission_names=names,
            )
        except IntegrityError as e:
            raise UserAlreadyExists(
                f"A user with email {payload.email} already exists"
            ) from e
        return _user_record(inst)

    async def get_user(self, user_uuid: UUID) -> UserRecord:
        inst = await User.get_or_none(uuid=user_uuid)
        if not inst:
            raise UserNotFound(f"No user with UUID {user_uuid} exists")
        return _user_record(inst)

    async def get_user_by_email(self, email: str) -> UserRecord:
        inst = await User.get_or_none(email=email)
        if not inst:
            raise UserNotFound(f"No user with email {email} exists")
        return _user_record(inst)

    async def set_user_permissions(
        self, user_uuid: UUID, permissions: frozenset[Permission]
    ) -> UserRecord:
        inst = await User.get_or_none(uuid=user_uuid)
        if not inst:
            raise UserNotFound(f"No user with UUID {user_uuid} exists")
        inst.permission_names = sorted(p.name for p in permissions)
        await inst.save(update_fields=["permission_names"])
        return _user_record(inst)


event_crud = EventCRUD()
booking_crud = BookingCRUD()
user_crud = UserCRUD()
