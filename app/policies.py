"""
Authorization decisions.

Every check is layered in the same fixed order and stops at the first gate
that fails:
  1. ALL bypass
  2. capability (the named permission is held)
  3. scope (same BDE)
  4. strength (permission level), where relevant
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID

from app.permissions import PermissionHolder, PermissionName, find_permission_level, holds


class Identity(PermissionHolder, Protocol):
    uuid: UUID


class BookingWindow(Protocol):
    booking_start: datetime | None
    booking_end: datetime | None


def to_utc(dt: datetime) -> datetime:
    """Ensure a datetime is UTC-aware, handling both aware and naive inputs."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def can_manage_permissions(source: PermissionHolder, target: PermissionHolder) -> bool:
    """
    Whether ``source`` may change the permissions of ``target``.

    ALL holders can manage anyone but other ALL holders. Otherwise
    MANAGE_PERMISSIONS is required, both users must belong to the same BDE,
    and the source level must be strictly higher than the target level.
    """
    if holds(source, PermissionName.ALL) and not holds(target, PermissionName.ALL):
        return True

    if not holds(source, PermissionName.MANAGE_PERMISSIONS):
        return False

    if source.bde_uuid != target.bde_uuid:
        return False

    return find_permission_level(source) > find_permission_level(target)


def can_add_user(source: PermissionHolder, bde_uuid: UUID) -> bool:
    """Whether ``source`` may register a new user in ``bde_uuid``."""
    if holds(source, PermissionName.ALL):
        return True

    if not holds(source, PermissionName.ADD_USER):
        return False

    return source.bde_uuid == bde_uuid


def can_manage_events(identity: PermissionHolder, bde_uuid: UUID) -> bool:
    if holds(identity, PermissionName.ALL):
        return True

    if not holds(identity, PermissionName.MANAGE_EVENTS):
        return False

    return identity.bde_uuid == bde_uuid


def can_manage_booking(identity: Identity, user_uuid: UUID, bde_uuid: UUID) -> bool:
    """
    Whether ``identity`` may create, read or delete the booking of
    ``user_uuid`` on an event owned by ``bde_uuid``.
    Users can always manage their own bookings.
    """
    if identity.uuid == user_uuid:
        return True

    if holds(identity, PermissionName.ALL):
        return True

    if not holds(identity, PermissionName.MANAGE_BOOKINGS):
        return False

    return identity.bde_uuid == bde_uuid


def can_book_now(event: BookingWindow, now: datetime) -> bool:
    """Return True if ``now`` falls inside the event's booking window."""
    now = to_utc(now)
    if event.booking_start is not None and to_utc(event.booking_start) > now:
        return False

    if event.booking_end is not None and to_utc(event.booking_end) < now:
        return False

    return True


def booking_dates_well_ordered(event: BookingWindow) -> bool:
    """Booking start must come strictly before booking end when both are set."""
    if event.booking_start is None or event.booking_end is None:
        return True
    return to_utc(event.booking_start) < to_utc(event.booking_end)
