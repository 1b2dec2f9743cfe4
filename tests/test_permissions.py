"""
Tests for the permission evaluator: full access, custom-role permissions in
both storage forms, the legacy manager fallback and the derived predicates.
"""
from types import SimpleNamespace

import pytest

from dashboard.rbac import permissions as perms
from dashboard.rbac.permissions import (
    CAPABILITIES,
    PermissionHelpers,
    can_access_page,
    capabilities,
    create_permission_helpers,
    has_full_access,
    has_permission,
    is_team_manager,
    normalize_actions,
)
from dashboard.rbac.roles import LegacyRole

from .conftest import make_role, make_user

CAN_PREDICATES = [name for name in CAPABILITIES if name.startswith("can_")]


class TestNormalizeActions:
    def test_list_form(self):
        assert normalize_actions(["Read", "Update"]) == frozenset({"Read", "Update"})

    def test_mapping_form_keeps_only_true(self):
        value = {"Read": True, "Update": True, "Delete": False}
        assert normalize_actions(value) == frozenset({"Read", "Update"})

    def test_mapping_requires_exact_true(self):
        assert normalize_actions({"Read": 1, "Update": "yes", "Create": True}) == frozenset({"Create"})

    def test_non_string_list_members_dropped(self):
        assert normalize_actions(["Read", 3, None]) == frozenset({"Read"})

    @pytest.mark.parametrize("value", [None, "Read", 42, True])
    def test_other_shapes_are_none(self, value):
        assert normalize_actions(value) is None


class TestHasFullAccess:
    def test_custom_role_full_access(self, full_access_role):
        user = make_user(role="employee", custom_role=full_access_role)
        assert has_full_access(user) is True

    @pytest.mark.parametrize("role", ["superadmin", "admin"])
    def test_legacy_admin_roles(self, role):
        assert has_full_access(make_user(role=role)) is True

    def test_legacy_role_enum_value(self):
        assert has_full_access(make_user(role=LegacyRole.ADMIN)) is True

    def test_admin_with_restrictive_custom_role(self):
        user = make_user(role="admin", custom_role=make_role(permissions={"Clients": ["Read"]}))
        assert has_full_access(user) is False

    @pytest.mark.parametrize("role", ["manager", "employee", "telecaller", "user"])
    def test_other_legacy_roles(self, role):
        assert has_full_access(make_user(role=role)) is False

    @pytest.mark.parametrize("user", [None, {}, [], "admin", 0, {"role": ["admin"]}])
    def test_malformed_input_denies(self, user):
        assert has_full_access(user) is False

    def test_full_access_flag_must_be_true(self):
        user = make_user(custom_role=make_role(full_access="true"))
        assert has_full_access(user) is False


class TestHasPermission:
    def test_custom_role_list_form(self):
        user = make_user(custom_role=make_role(permissions={"Clients": ["Read"]}))
        assert has_permission(user, "Clients", "Read") is True
        assert has_permission(user, "Clients", "Delete") is False

    def test_custom_role_overrides_manager_defaults(self):
        user = make_user(role="manager", custom_role=make_role(permissions={"Clients": ["Read"]}))
        assert has_permission(user, "Clients", "Read") is True
        assert has_permission(user, "Clients", "Delete") is False
        assert has_permission(user, "Users", "Update") is False

    def test_legacy_manager_defaults(self, manager):
        assert has_permission(manager, "Users", "Create") is True
        assert has_permission(manager, "Users", "Read") is True
        assert has_permission(manager, "Users", "Update") is True
        assert has_permission(manager, "Users", "Delete") is False
        assert has_permission(manager, "Clients", "Delete") is True
        assert has_permission(manager, "Activities", "Read") is True

    def test_legacy_manager_has_no_settings(self, manager):
        assert has_permission(manager, "Settings", "Read") is False
        assert has_permission(manager, "Settings", "Update") is False
        assert has_permission(manager, "Activities", "Update") is False

    def test_full_access_grants_anything(self, full_access_role):
        user = make_user(custom_role=full_access_role)
        assert has_permission(user, "Anything", "Whatever") is True

    def test_employee_without_custom_role(self, employee):
        assert has_permission(employee, "Clients", "Read") is False

    def test_missing_module_denies(self):
        user = make_user(custom_role=make_role(permissions={"Users": ["Read"]}))
        assert has_permission(user, "Clients", "Read") is False

    def test_list_and_mapping_forms_agree(self):
        as_list = make_user(custom_role=make_role(permissions={"Clients": ["Read", "Update"]}))
        as_map = make_user(
            custom_role=make_role(permissions={"Clients": {"Read": True, "Update": True, "Delete": False}})
        )
        for action in ("Create", "Read", "Update", "Delete"):
            assert has_permission(as_list, "Clients", action) == has_permission(as_map, "Clients", action)

    def test_dangling_custom_role_id_disables_fallback(self):
        user = make_user(role="manager", custom_role_id="r-gone", custom_role=None)
        assert has_permission(user, "Users", "Read") is False
        assert has_full_access(make_user(role="admin", custom_role_id="r-gone")) is False

    @pytest.mark.parametrize(
        "permissions",
        [None, "Clients", ["Clients"], {"Clients": "Read"}, {"Clients": None}, 7],
    )
    def test_malformed_permissions_deny(self, permissions):
        role = make_role()
        role["permissions"] = permissions
        assert has_permission(make_user(custom_role=role), "Clients", "Read") is False

    def test_unhashable_arguments_deny(self, manager):
        assert has_permission(manager, ["Users"], "Read") is False
        assert has_permission(manager, "Users", {"Read": True}) is False

    def test_attribute_snapshot(self):
        role = SimpleNamespace(full_access=False, is_team_manager=False, permissions={"Users": ["Read"]})
        user = SimpleNamespace(id="x", role="employee", custom_role_id="r-1", custom_role=role)
        assert has_permission(user, "Users", "Read") is True
        assert has_permission(user, "Users", "Update") is False

    def test_snapshot_not_mutated(self):
        role = make_role(permissions={"Clients": {"Read": True}})
        user = make_user(custom_role=role)
        before = repr(user)
        has_permission(user, "Clients", "Read")
        capabilities(user)
        assert repr(user) == before


class TestIsTeamManager:
    def test_legacy_manager(self, manager):
        assert is_team_manager(manager) is True

    def test_legacy_employee(self, employee):
        assert is_team_manager(employee) is False

    def test_custom_role_flag(self):
        assert is_team_manager(make_user(custom_role=make_role(is_team_manager=True))) is True

    def test_manager_with_custom_role_without_flag(self):
        assert is_team_manager(make_user(role="manager", custom_role=make_role())) is False

    def test_full_access(self, admin):
        assert is_team_manager(admin) is True


class TestDerivedPredicates:
    def test_full_access_grants_every_predicate(self, full_access_role):
        user = make_user(role="employee", custom_role=full_access_role)
        assert all(capabilities(user).values())

    def test_employee_gets_nothing(self, employee):
        for name in CAN_PREDICATES:
            assert getattr(perms, name)(employee) is False, name

    def test_settings_predicates(self):
        user = make_user(custom_role=make_role(permissions={"Settings": {"Read": True, "Update": False}}))
        assert perms.can_view_settings(user) is True
        assert perms.can_edit_settings(user) is False

    def test_manager_capabilities(self, manager):
        caps = capabilities(manager)
        assert caps["can_view_users"] is True
        assert caps["can_delete_users"] is False
        assert caps["can_delete_clients"] is True
        assert caps["can_view_activities"] is True
        assert caps["can_view_settings"] is False
        assert caps["is_team_manager"] is True
        assert caps["has_full_access"] is False

    def test_page_access(self):
        user = make_user(custom_role=make_role(permissions={"Pages": ["Dashboard", "Clients"]}))
        assert can_access_page(user, "Clients") is True
        assert can_access_page(user, "Settings") is False


class TestPermissionHelpers:
    def test_bound_helpers_match_functions(self, manager):
        helpers = create_permission_helpers(manager)
        assert isinstance(helpers, PermissionHelpers)
        assert helpers.has_permission("Users", "Update") is True
        assert helpers.can_delete_users() is False
        assert helpers.is_team_manager() is True
        assert helpers.as_dict() == capabilities(manager)

    def test_none_user(self):
        helpers = PermissionHelpers(None)
        assert helpers.has_full_access() is False
        assert not any(helpers.as_dict().values())
