"""Tests for the permission catalog, levels and name-based identity."""

from types import SimpleNamespace
from uuid import uuid4

from app.permissions import (
    PERMISSIONS,
    Permission,
    PermissionName,
    find_permission_level,
    holds,
    permissions_from_strings,
)


def _entity(*permissions: Permission) -> SimpleNamespace:
    return SimpleNamespace(bde_uuid=uuid4(), permissions=frozenset(permissions))


class TestPermissionIdentity:
    def test_equality_ignores_level(self):
        assert Permission("MANAGE_EVENTS", 1) == Permission("MANAGE_EVENTS", 99)

    def test_hash_ignores_level(self):
        perms = {Permission("ADD_USER", 1), Permission("ADD_USER", 2)}
        assert len(perms) == 1

    def test_holds_matches_by_name(self):
        entity = _entity(Permission("MANAGE_BOOKINGS", 3))
        assert holds(entity, PermissionName.MANAGE_BOOKINGS)
        assert not holds(entity, PermissionName.ALL)

    def test_holds_works_on_plain_lists(self):
        entity = SimpleNamespace(permissions=[Permission("ALL", 100)])
        assert holds(entity, PermissionName.ALL)


class TestFindPermissionLevel:
    def test_no_permissions_is_level_zero(self):
        assert find_permission_level(_entity()) == 0

    def test_highest_level_wins(self):
        entity = _entity(Permission("A", 3), Permission("B", 7))
        assert find_permission_level(entity) == 7

    def test_never_negative(self):
        assert find_permission_level(_entity(Permission("A", -5))) == 0


class TestPermissionsFromStrings:
    def test_known_names_map_to_catalog_entries(self):
        perms = permissions_from_strings(["ADD_USER", "MANAGE_EVENTS"])
        assert perms == {PERMISSIONS["ADD_USER"], PERMISSIONS["MANAGE_EVENTS"]}
        assert {p.level for p in perms} == {
            PERMISSIONS["ADD_USER"].level,
            PERMISSIONS["MANAGE_EVENTS"].level,
        }

    def test_unknown_names_are_dropped(self):
        assert permissions_from_strings(["FLY", "ALL"]) == {PERMISSIONS["ALL"]}

    def test_duplicates_collapse(self):
        assert len(permissions_from_strings(["ALL", "ALL"])) == 1

    def test_empty_input(self):
        assert permissions_from_strings([]) == frozenset()


class TestCatalog:
    def test_every_named_permission_is_in_catalog(self):
        for name in PermissionName:
            assert name in PERMISSIONS

    def test_all_has_highest_default_level(self):
        top = max(p.level for p in PERMISSIONS.values())
        assert PERMISSIONS["ALL"].level == top
