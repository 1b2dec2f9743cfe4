"""
Activity log schemas: who did what to which user, client or role.
"""

from enum import Enum


class ActivityAction(str, Enum):
    USER_CREATED = "user_created"
    USER_UPDATED = "user_updated"
    USER_DELETED = "user_deleted"
    CLIENT_CREATED = "client_created"
    CLIENT_UPDATED = "client_updated"
    CLIENT_DELETED = "client_deleted"
    CLIENT_ASSIGNED = "client_assigned"
    CLIENT_UNASSIGNED = "client_unassigned"
    ROLE_CREATED = "role_created"
    ROLE_UPDATED = "role_updated"
    ROLE_DELETED = "role_deleted"
    LOGIN = "login"
    LOGOUT = "logout"


class EntityType(str, Enum):
    USER = "user"
    CLIENT = "client"
    ROLE = "role"
