from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from app.policies import booking_dates_well_ordered, to_utc


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


class EventPayload(BaseModel):
    """Body of both event creation and event patching."""

    name: str = Field(min_length=1, max_length=200)
    bde: UUID
    is_draft: bool = Field(alias="isDraft")
    booking_start: datetime | None = Field(default=None, alias="bookingStart")
    booking_end: datetime | None = Field(default=None, alias="bookingEnd")
    event_date: datetime | None = Field(default=None, alias="eventDate")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("booking_start", "booking_end", "event_date", mode="after")
    @classmethod
    def normalize_tz(cls, v: datetime | None) -> datetime | None:
        return to_utc(v) if v is not None else None

    @model_validator(mode="after")
    def validate_booking_window(self) -> EventPayload:
        if not booking_dates_well_ordered(self):
            raise ValueError(
                "Booking end date must come (strictly) after booking beginning date."
            )
        return self


class EventResponse(BaseModel):
    event_uuid: UUID = Field(
        validation_alias=AliasChoices("event_uuid", "eventUUID", "uuid"),
        serialization_alias="eventUUID",
    )
    bde_uuid: UUID = Field(
        validation_alias=AliasChoices("bde_uuid", "bdeUUID", "bde_id"),
        serialization_alias="bdeUUID",
    )
    event_name: str = Field(
        validation_alias=AliasChoices("event_name", "eventName", "name"),
        serialization_alias="eventName",
    )
    is_draft: bool = Field(
        validation_alias=AliasChoices("is_draft", "isDraft"),
        serialization_alias="isDraft",
    )
    booking_start: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("booking_start", "bookingStart"),
        serialization_alias="bookingStart",
    )
    booking_end: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("booking_end", "bookingEnd"),
        serialization_alias="bookingEnd",
    )
    event_date: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("event_date", "eventDate"),
        serialization_alias="eventDate",
    )

    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


class BookingOptions(BaseModel):
    """Optional body of booking creation. Event and user come from the path."""

    force: bool = False


class BookingResponse(BaseModel):
    event_uuid: UUID = Field(
        validation_alias=AliasChoices("event_uuid", "eventUUID", "event_id"),
        serialization_alias="eventUUID",
    )
    user_uuid: UUID = Field(
        validation_alias=AliasChoices("user_uuid", "userUUID", "user_id"),
        serialization_alias="userUUID",
    )

    model_config = ConfigDict(from_attributes=True)


class EventBookingResponse(EventResponse):
    """A booking joined with the event it is for."""

    user_uuid: UUID = Field(
        validation_alias=AliasChoices("user_uuid", "userUUID"),
        serialization_alias="userUUID",
    )


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class UserCreate(BaseModel):
    email: str = Field(min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=8, max_length=128)
    firstname: str = Field(min_length=1, max_length=100)
    lastname: str = Field(min_length=1, max_length=100)
    bde: UUID
    permissions: list[str] = Field(default_factory=list)


class PermissionsUpdate(BaseModel):
    permissions: list[str]


class UserResponse(BaseModel):
    uuid: UUID
    email: str
    firstname: str
    lastname: str
    bde_uuid: UUID = Field(
        validation_alias=AliasChoices("bde_uuid", "bdeUUID", "bde_id"),
        serialization_alias="bdeUUID",
    )
    permissions: list[str] = Field(
        validation_alias=AliasChoices("permission_names", "permissions"),
    )

    model_config = ConfigDict(from_attributes=True)

    @field_validator("permissions", mode="after")
    @classmethod
    def sort_permissions(cls, v: list[str]) -> list[str]:
        return sorted(set(v))


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
