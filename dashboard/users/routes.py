from fastapi import APIRouter, Depends, HTTPException, Request, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from dashboard.activities.schemas import ActivityAction, EntityType
from dashboard.activities.service import ActivityService
from dashboard.config import get_database
from dashboard.rbac import can_manage_user
from dashboard.rbac.decorators import get_current_user, require_permission
from dashboard.utils import success_response
from .schemas import CreateUserRequest, SetManagersRequest, UpdateUserRequest
from .service import UserService

users_router = APIRouter()


@users_router.post("/")
@require_permission("Users", "Create")
async def create_user(
    request: Request,
    body: CreateUserRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    svc = UserService(db)
    user = await svc.create_user(data=body.model_dump(mode="json"), actor=actor)
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.USER_CREATED,
        description=f"Created user '{user['email']}'",
        entity_type=EntityType.USER,
        entity_id=user["id"],
    )
    return success_response(data=user, message="User created", code=201)


@users_router.get("/")
@require_permission("Users", "Read")
async def list_users(
    request: Request,
    q: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Everyone for full access; otherwise the caller and their team."""
    actor = get_current_user(request)
    svc = UserService(db)
    team_ids = await svc.get_team_ids(actor["id"])
    users, total = await svc.list_users(
        actor, team_ids, query=q, limit=limit, offset=offset
    )
    return success_response(
        data={"users": users, "total": total, "limit": limit, "offset": offset}
    )


@users_router.get("/{user_id}")
async def get_user(
    request: Request,
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    user = await UserService(db).get_user(user_id)
    if not can_manage_user(actor, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "CANNOT_MANAGE_USER",
                "message": "You do not have permission to manage this user",
            },
        )
    return success_response(data=user)


@users_router.put("/{user_id}")
@require_permission("Users", "Update")
async def update_user(
    request: Request,
    user_id: str,
    body: UpdateUserRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    user = await UserService(db).update_user(
        user_id, body.model_dump(mode="json", exclude_unset=True), actor
    )
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.USER_UPDATED,
        description=f"Updated user '{user['email']}'",
        entity_type=EntityType.USER,
        entity_id=user_id,
    )
    return success_response(data=user, message="User updated")


@users_router.put("/{user_id}/managers")
@require_permission("Users", "Update")
async def set_managers(
    request: Request,
    user_id: str,
    body: SetManagersRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Replace who manages this user."""
    actor = get_current_user(request)
    svc = UserService(db)
    await svc.ensure_can_modify(user_id, actor)
    user = await svc.set_managers(user_id, body.manager_ids)
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.USER_UPDATED,
        description=f"Set managers of '{user['email']}'",
        entity_type=EntityType.USER,
        entity_id=user_id,
    )
    return success_response(data=user, message="Managers updated")


@users_router.delete("/{user_id}")
@require_permission("Users", "Delete")
async def delete_user(
    request: Request,
    user_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    if user_id == actor["id"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account",
        )
    svc = UserService(db)
    await svc.ensure_can_modify(user_id, actor)
    result = await svc.delete_user(user_id)
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.USER_DELETED,
        description="Deleted user",
        entity_type=EntityType.USER,
        entity_id=user_id,
    )
    return success_response(data=result, message="User deleted")
