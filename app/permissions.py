from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol
from uuid import UUID

from app import settings


class PermissionName(StrEnum):
    ALL = "ALL"  # bypasses every check, except against other ALL holders
    MANAGE_PERMISSIONS = "MANAGE_PERMISSIONS"
    ADD_USER = "ADD_USER"
    MANAGE_EVENTS = "MANAGE_EVENTS"
    MANAGE_BOOKINGS = "MANAGE_BOOKINGS"


@dataclass(frozen=True)
class Permission:
    """A named permission. Equality and hashing only consider the name."""

    name: str
    level: int = field(default=0, compare=False)


class PermissionHolder(Protocol):
    bde_uuid: UUID
    permissions: Iterable[Permission]


def _build_catalog(levels: dict[str, int]) -> dict[str, Permission]:
    return {name: Permission(name=name, level=int(level)) for name, level in levels.items()}


PERMISSIONS: dict[str, Permission] = _build_catalog(settings.permission_levels)


def holds(entity: PermissionHolder, name: str) -> bool:
    return Permission(name) in entity.permissions


def find_permission_level(entity: PermissionHolder) -> int:
    """Return the highest permission level of ``entity``, 0 if it has none."""
    return max([0, *(p.level for p in entity.permissions)])


def permissions_from_strings(names: Iterable[str]) -> frozenset[Permission]:
    """
    Map permission names to catalog entries.
    Names missing from the catalog are dropped silently.
    """
    wanted = set(names)
    return frozenset(p for name, p in PERMISSIONS.items() if name in wanted)
