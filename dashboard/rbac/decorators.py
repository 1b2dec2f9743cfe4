"""
Declarative permission decorators for route handlers.

Usage:
    @router.get("/")
    @require_permission("Clients", "Read")
    async def list_clients(request: Request):
        ...

Must be applied AFTER (below) the route decorator. The snapshot is read
from ``request.state.user``, which AuthMiddleware sets on every
authenticated request.
"""

from functools import wraps
from typing import Any, Callable

from fastapi import HTTPException, status
from starlette.requests import Request

from dashboard.utils import Logger
from .permissions import (
    _field,
    can_access_page,
    has_full_access,
    has_permission,
    is_team_manager,
)

logger = Logger("rbac")


def _find_request(args, kwargs) -> Request:
    request: Request | None = kwargs.get("request")
    if request is None:
        for arg in args:
            if isinstance(arg, Request):
                request = arg
                break

    if request is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Request object not found in handler",
        )
    return request


def get_current_user(request: Request) -> Any:
    """Snapshot of the authenticated user, or 401."""
    user = getattr(request.state, "user", None)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"code": "AUTH_REQUIRED", "message": "Authentication required"},
        )
    return user


def _guard(check: Callable[[Any], bool], code: str, message: str, **context):
    """Build a decorator that rejects the request unless ``check(user)``."""

    def decorator(func):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            request = _find_request(args, kwargs)
            user = get_current_user(request)

            if not check(user):
                logger.warning(
                    "Permission denied",
                    user_id=_field(user, "id"),
                    role=_field(user, "role"),
                    custom_role=_field(_field(user, "custom_role"), "name"),
                    path=request.url.path,
                    method=request.method,
                    **context,
                )
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail={"code": code, "message": message},
                )

            return await func(*args, **kwargs)

        return wrapper

    return decorator


def require_permission(module: str, action: str):
    """Reject unless the user holds ``module``/``action``."""
    return _guard(
        lambda user: has_permission(user, module, action),
        "AUTH_INSUFFICIENT_PERMISSIONS",
        f"You do not have permission to {action.lower()} {module.lower()}",
        required_module=module,
        required_action=action,
    )


require_full_access = _guard(
    has_full_access,
    "AUTH_INSUFFICIENT_PERMISSIONS",
    "Full access required",
)

require_team_manager = _guard(
    is_team_manager,
    "AUTH_INSUFFICIENT_PERMISSIONS",
    "Team manager access required",
)


def require_page_access(page: str):
    """Reject unless the user's role lists ``page`` under Pages."""
    return _guard(
        lambda user: can_access_page(user, page),
        "AUTH_PAGE_ACCESS_DENIED",
        f"You do not have access to the {page} page",
        required_page=page,
    )
