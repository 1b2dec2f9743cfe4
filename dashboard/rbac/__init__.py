from .roles import (
    FULL_ACCESS_ROLES,
    LegacyRole,
    PERMISSIONS_SCHEMA,
    full_permissions,
    sanitize_permissions,
)
from .permissions import (
    PermissionHelpers,
    capabilities,
    create_permission_helpers,
    has_full_access,
    has_permission,
    is_team_manager,
    normalize_actions,
)
from .access import (
    ActivityScope,
    activity_scope,
    build_activity_filter,
    can_access_client,
    can_manage_user,
)

__all__ = [
    "FULL_ACCESS_ROLES",
    "LegacyRole",
    "PERMISSIONS_SCHEMA",
    "full_permissions",
    "sanitize_permissions",
    "PermissionHelpers",
    "capabilities",
    "create_permission_helpers",
    "has_full_access",
    "has_permission",
    "is_team_manager",
    "normalize_actions",
    "ActivityScope",
    "activity_scope",
    "build_activity_filter",
    "can_access_client",
    "can_manage_user",
]
