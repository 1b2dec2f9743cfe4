"""
Relationship-aware access checks.

These combine the permission evaluator with who-manages-whom data that the
caller has already loaded (target user documents, client assignments, team
member ids). Like the evaluator they are pure and never raise.
"""

from enum import Enum
from typing import Any, Iterable, Optional

from .permissions import _field, has_full_access, has_permission


class ActivityScope(str, Enum):
    ALL = "all"
    TEAM = "team"
    SELF = "self"


def _ids(values: Any) -> set[str]:
    if not isinstance(values, (list, tuple, set, frozenset)):
        return set()
    return {str(v) for v in values if v is not None}


def _id(obj: Any) -> Optional[str]:
    value = _field(obj, "id")
    return str(value) if value is not None else None


def can_manage_user(actor: Any, target: Any) -> bool:
    """
    Whether ``actor`` may view or edit ``target``.

    Users can always manage themselves. Full access or Users/Update covers
    everyone. Users/Read covers only users the actor created or manages.
    """
    actor_id = _id(actor)
    target_id = _id(target)
    if actor_id is None or target_id is None:
        return False
    if actor_id == target_id:
        return True
    if has_full_access(actor) or has_permission(actor, "Users", "Update"):
        return True
    if has_permission(actor, "Users", "Read"):
        created_by = _field(target, "created_by")
        if created_by is not None and str(created_by) == actor_id:
            return True
        return actor_id in _ids(_field(target, "manager_ids"))
    return False


def can_access_client(user: Any, client: Any) -> bool:
    """Full access, or an assignment to this client."""
    if has_full_access(user):
        return True
    user_id = _id(user)
    return user_id is not None and user_id in _ids(_field(client, "assigned_user_ids"))


def activity_scope(user: Any) -> ActivityScope:
    if has_full_access(user):
        return ActivityScope.ALL
    if has_permission(user, "Users", "Read") or has_permission(user, "Activities", "Read"):
        return ActivityScope.TEAM
    return ActivityScope.SELF


def visible_user_ids(user: Any, team_ids: Iterable[str] = ()) -> Optional[list[str]]:
    """
    Ids whose activity ``user`` may see, or None for everyone.

    The user's own id always comes first.
    """
    scope = activity_scope(user)
    if scope is ActivityScope.ALL:
        return None
    own = _id(user)
    ids = [own] if own is not None else []
    if scope is ActivityScope.TEAM:
        ids.extend(i for i in dict.fromkeys(str(t) for t in team_ids) if i != own)
    return ids


def build_activity_filter(
    user: Any,
    team_ids: Iterable[str] = (),
    target: Optional[str] = None,
    action: Optional[str] = None,
) -> dict:
    """Mongo filter for the activity listing visible to ``user``."""
    filters: dict = {}
    ids = visible_user_ids(user, team_ids)
    if ids is not None:
        if len(ids) == 1:
            filters["user_id"] = ids[0]
        else:
            filters["user_id"] = {"$in": ids}
    if target:
        filters["entity_type"] = target
    if action:
        filters["action"] = action
    return filters
