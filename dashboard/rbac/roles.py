"""
Legacy roles and the custom-role permission catalogue.

Permission format on a custom role:
  {"<Module>": ["<Action>", ...]}           list form
  {"<Module>": {"<Action>": true, ...}}     mapping form
Both forms are read by the evaluator; editors always store the mapping form.
"""

from enum import Enum
from typing import Any, Mapping


class LegacyRole(str, Enum):
    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    TELECALLER = "telecaller"
    USER = "user"


# Legacy roles that imply full access while no custom role is assigned.
FULL_ACCESS_ROLES = frozenset({LegacyRole.SUPERADMIN.value, LegacyRole.ADMIN.value})

# Fallback for managers created before custom roles existed.
# Settings and Activities write actions are deliberately absent.
LEGACY_MANAGER_PERMISSIONS: dict[str, frozenset[str]] = {
    "Users": frozenset({"Create", "Read", "Update"}),
    "Clients": frozenset({"Create", "Read", "Update", "Delete"}),
    "Activities": frozenset({"Read"}),
}

PERMISSIONS_SCHEMA: dict[str, list[str]] = {
    "Pages": ["Dashboard", "Clients", "Users", "Services", "Activities", "Settings"],
    "Settings": [
        "Read",
        "Update",
        "Roles",
        "Autovation Clients",
        "Notifications",
        "System Maintenance Email",
        "SMTP Credentials",
        "Voicemail SFTP Credentials",
        "Vicidial Credentials",
        "Site Customization",
    ],
    "Users": ["Create", "Read", "Update", "Delete"],
    "Clients": ["Create", "Read", "Update", "Delete"],
    "Activities": ["Read"],
}


def full_permissions() -> dict[str, dict[str, bool]]:
    """Every action of every module in the catalogue, granted."""
    return {
        module: {action: True for action in actions}
        for module, actions in PERMISSIONS_SCHEMA.items()
    }


def sanitize_permissions(raw: Any) -> dict[str, dict[str, bool]]:
    """
    Reduce editor input to the catalogue, in mapping form.

    Only actions listed (list form) or set to exactly ``True`` (mapping form)
    are granted. Unknown modules and actions are dropped.
    """
    source = raw if isinstance(raw, Mapping) else {}
    sanitized: dict[str, dict[str, bool]] = {}

    for module, actions in PERMISSIONS_SCHEMA.items():
        value = source.get(module)
        if isinstance(value, Mapping):
            granted = {a for a, flag in value.items() if flag is True}
        elif isinstance(value, (list, tuple, set, frozenset)):
            granted = {a for a in value if isinstance(a, str)}
        else:
            granted = set()
        sanitized[module] = {action: action in granted for action in actions}

    return sanitized
