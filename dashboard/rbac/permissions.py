"""
Permission evaluation for a user snapshot.

Every check takes the snapshot explicitly; nothing here reads request or
global state. A snapshot is a mapping (the dict built by
``UserService.get_snapshot``) or any object exposing the same attributes:

    {
        "id": "...",
        "role": "manager",
        "custom_role_id": "..." | None,
        "custom_role": {
            "full_access": False,
            "is_team_manager": True,
            "permissions": {"Clients": ["Read"], "Users": {"Read": True}},
        } | None,
    }

Evaluation order is fixed: full access, then the custom role's explicit
permissions, then the legacy manager fallback, then deny. Missing or
malformed fields always resolve to deny; no function here raises.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Optional

from .roles import FULL_ACCESS_ROLES, LEGACY_MANAGER_PERMISSIONS, LegacyRole


_ACTION_SEQUENCES = (list, tuple, set, frozenset)


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _role(user: Any) -> Optional[str]:
    role = _field(user, "role")
    if isinstance(role, Enum):
        role = role.value
    return role if isinstance(role, str) else None


def _has_custom_role(user: Any) -> bool:
    return bool(_field(user, "custom_role_id"))


def _is_legacy(user: Any, role: LegacyRole) -> bool:
    return not _has_custom_role(user) and _role(user) == role.value


def normalize_actions(value: Any) -> Optional[frozenset[str]]:
    """
    Canonical set of granted actions for one module's permission value.

    ``["Read", "Update"]`` and ``{"Read": True, "Update": True, "Delete": False}``
    both become ``frozenset({"Read", "Update"})``. Returns None when the
    value is neither form (a bare string counts as neither).
    """
    if isinstance(value, _ACTION_SEQUENCES):
        return frozenset(a for a in value if isinstance(a, str))
    if isinstance(value, Mapping):
        return frozenset(a for a, flag in value.items() if flag is True)
    return None


def has_full_access(user: Any) -> bool:
    if _field(_field(user, "custom_role"), "full_access") is True:
        return True
    return not _has_custom_role(user) and _role(user) in FULL_ACCESS_ROLES


def has_permission(user: Any, module: str, action: str) -> bool:
    if has_full_access(user):
        return True
    if not isinstance(module, str) or not isinstance(action, str):
        return False

    permissions = _field(_field(user, "custom_role"), "permissions")
    if isinstance(permissions, Mapping):
        granted = normalize_actions(permissions.get(module))
        if granted is not None and action in granted:
            return True

    if _is_legacy(user, LegacyRole.MANAGER):
        return action in LEGACY_MANAGER_PERMISSIONS.get(module, frozenset())

    return False


def is_team_manager(user: Any) -> bool:
    if has_full_access(user):
        return True
    if _field(_field(user, "custom_role"), "is_team_manager") is True:
        return True
    return _is_legacy(user, LegacyRole.MANAGER)


def can_access_page(user: Any, page: str) -> bool:
    return has_permission(user, "Pages", page)


def _capability(module: str, action: str):
    def check(user: Any) -> bool:
        return has_full_access(user) or has_permission(user, module, action)

    check.__doc__ = f"Full access, or {module}/{action}."
    return check


can_view_clients = _capability("Clients", "Read")
can_edit_clients = _capability("Clients", "Update")
can_create_clients = _capability("Clients", "Create")
can_delete_clients = _capability("Clients", "Delete")
can_view_users = _capability("Users", "Read")
can_edit_users = _capability("Users", "Update")
can_create_users = _capability("Users", "Create")
can_delete_users = _capability("Users", "Delete")
can_view_activities = _capability("Activities", "Read")
can_view_settings = _capability("Settings", "Read")
can_edit_settings = _capability("Settings", "Update")

CAPABILITIES = {
    "has_full_access": has_full_access,
    "is_team_manager": is_team_manager,
    "can_view_clients": can_view_clients,
    "can_edit_clients": can_edit_clients,
    "can_create_clients": can_create_clients,
    "can_delete_clients": can_delete_clients,
    "can_view_users": can_view_users,
    "can_edit_users": can_edit_users,
    "can_create_users": can_create_users,
    "can_delete_users": can_delete_users,
    "can_view_activities": can_view_activities,
    "can_view_settings": can_view_settings,
    "can_edit_settings": can_edit_settings,
}


def capabilities(user: Any) -> dict[str, bool]:
    """All boolean capabilities of a user, as served to the frontend."""
    return {name: check(user) for name, check in CAPABILITIES.items()}


class PermissionHelpers:
    """Every check bound to one snapshot, for callers that ask repeatedly."""

    def __init__(self, user: Any):
        self.user = user

    def has_full_access(self) -> bool:
        return has_full_access(self.user)

    def has_permission(self, module: str, action: str) -> bool:
        return has_permission(self.user, module, action)

    def is_team_manager(self) -> bool:
        return is_team_manager(self.user)

    def can_access_page(self, page: str) -> bool:
        return can_access_page(self.user, page)

    def can_view_clients(self) -> bool:
        return can_view_clients(self.user)

    def can_edit_clients(self) -> bool:
        return can_edit_clients(self.user)

    def can_create_clients(self) -> bool:
        return can_create_clients(self.user)

    def can_delete_clients(self) -> bool:
        return can_delete_clients(self.user)

    def can_view_users(self) -> bool:
        return can_view_users(self.user)

    def can_edit_users(self) -> bool:
        return can_edit_users(self.user)

    def can_create_users(self) -> bool:
        return can_create_users(self.user)

    def can_delete_users(self) -> bool:
        return can_delete_users(self.user)

    def can_view_activities(self) -> bool:
        return can_view_activities(self.user)

    def can_view_settings(self) -> bool:
        return can_view_settings(self.user)

    def can_edit_settings(self) -> bool:
        return can_edit_settings(self.user)

    def as_dict(self) -> dict[str, bool]:
        return capabilities(self.user)


def create_permission_helpers(user: Any) -> PermissionHelpers:
    return PermissionHelpers(user)
