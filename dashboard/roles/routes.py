"""
Custom role routes: full-access users only.

Endpoints:
    GET    /               List roles with user counts
    GET    /schema         Module -> actions catalogue for the role editor
    GET    /{id}           Single role
    POST   /               Create role
    PUT    /{id}           Update role (system roles refused)
    PATCH  /{id}/toggle    Activate / deactivate
    DELETE /{id}           Delete role (refused while users are assigned)
"""

from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from dashboard.activities.schemas import ActivityAction, EntityType
from dashboard.activities.service import ActivityService
from dashboard.config import get_database
from dashboard.rbac import PERMISSIONS_SCHEMA
from dashboard.rbac.decorators import get_current_user, require_full_access
from dashboard.utils import success_response
from .schemas import CreateRoleRequest, UpdateRoleRequest
from .service import RoleService

roles_router = APIRouter()


@roles_router.get("/")
@require_full_access
async def list_roles(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return success_response(data=await RoleService(db).list_roles())


@roles_router.get("/schema")
@require_full_access
async def permissions_schema(request: Request):
    return success_response(data=PERMISSIONS_SCHEMA)


@roles_router.get("/{role_id}")
@require_full_access
async def get_role(
    request: Request,
    role_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    return success_response(data=await RoleService(db).get_role(role_id))


@roles_router.post("/")
@require_full_access
async def create_role(
    request: Request,
    body: CreateRoleRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    role = await RoleService(db).create_role(body.model_dump())
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.ROLE_CREATED,
        description=f"Created role '{role['name']}'",
        entity_type=EntityType.ROLE,
        entity_id=role["id"],
    )
    return success_response(data=role, message="Role created successfully", code=201)


@roles_router.put("/{role_id}")
@require_full_access
async def update_role(
    request: Request,
    role_id: str,
    body: UpdateRoleRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    role = await RoleService(db).update_role(role_id, body.model_dump(exclude_unset=True))
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.ROLE_UPDATED,
        description=f"Updated role '{role['name']}'",
        entity_type=EntityType.ROLE,
        entity_id=role_id,
    )
    return success_response(data=role, message="Role updated successfully")


@roles_router.patch("/{role_id}/toggle")
@require_full_access
async def toggle_role(
    request: Request,
    role_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    role = await RoleService(db).toggle_role(role_id)
    state = "activated" if role["is_active"] else "deactivated"
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.ROLE_UPDATED,
        description=f"{state.capitalize()} role '{role['name']}'",
        entity_type=EntityType.ROLE,
        entity_id=role_id,
    )
    return success_response(data=role, message=f"Role {state} successfully")


@roles_router.delete("/{role_id}")
@require_full_access
async def delete_role(
    request: Request,
    role_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    result = await RoleService(db).delete_role(role_id)
    await ActivityService(db).log(
        user_id=actor["id"],
        action=ActivityAction.ROLE_DELETED,
        description=f"Deleted role '{result['name']}'",
        entity_type=EntityType.ROLE,
        entity_id=role_id,
    )
    return success_response(data=result, message="Role deleted successfully")
