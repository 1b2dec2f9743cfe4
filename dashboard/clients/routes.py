from fastapi import APIRouter, Depends, HTTPException, Request, Query, status
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from dashboard.activities.schemas import ActivityAction, EntityType
from dashboard.activities.service import ActivityService
from dashboard.config import get_database
from dashboard.rbac import can_access_client
from dashboard.rbac.decorators import get_current_user, require_permission
from dashboard.utils import success_response
from .schemas import AssignUsersRequest, CreateClientRequest, UpdateClientRequest
from .service import ClientService

clients_router = APIRouter()


async def _log(db, actor: dict, action: ActivityAction, client_id: str, description: str):
    await ActivityService(db).log(
        user_id=actor["id"],
        action=action,
        description=description,
        entity_type=EntityType.CLIENT,
        entity_id=client_id,
    )


@clients_router.post("/")
@require_permission("Clients", "Create")
async def create_client(
    request: Request,
    body: CreateClientRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    client = await ClientService(db).create_client(
        data=body.model_dump(mode="json"), created_by=actor["id"],
    )
    await _log(db, actor, ActivityAction.CLIENT_CREATED, client["id"],
               f"Created client '{client['name']}'")
    return success_response(data=client, message="Client created", code=201)


@clients_router.get("/")
@require_permission("Clients", "Read")
async def list_clients(
    request: Request,
    q: Optional[str] = Query(None),
    client_type: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """All clients for full access, otherwise the caller's assigned clients."""
    actor = get_current_user(request)
    clients, total = await ClientService(db).list_clients(
        actor, query=q, client_type=client_type, limit=limit, offset=offset,
    )
    return success_response(
        data={"clients": clients, "total": total, "limit": limit, "offset": offset}
    )


@clients_router.get("/{client_id}")
async def get_client(
    request: Request, client_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    client = await ClientService(db).get_client(client_id)
    if not can_access_client(actor, client):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={
                "code": "CLIENT_ACCESS_DENIED",
                "message": "You do not have access to this client",
            },
        )
    return success_response(data=client)


@clients_router.put("/{client_id}")
@require_permission("Clients", "Update")
async def update_client(
    request: Request, client_id: str, body: UpdateClientRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    client = await ClientService(db).update_client(
        client_id, body.model_dump(mode="json", exclude_unset=True)
    )
    await _log(db, actor, ActivityAction.CLIENT_UPDATED, client_id,
               f"Updated client '{client['name']}'")
    return success_response(data=client, message="Client updated")


@clients_router.post("/{client_id}/assign")
@require_permission("Clients", "Update")
async def assign_users(
    request: Request, client_id: str, body: AssignUsersRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    client = await ClientService(db).assign_users(client_id, body.user_ids)
    await _log(db, actor, ActivityAction.CLIENT_ASSIGNED, client_id,
               f"Assigned {len(body.user_ids)} user(s) to '{client['name']}'")
    return success_response(data=client, message="Users assigned")


@clients_router.post("/{client_id}/unassign")
@require_permission("Clients", "Update")
async def unassign_users(
    request: Request, client_id: str, body: AssignUsersRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    client = await ClientService(db).unassign_users(client_id, body.user_ids)
    await _log(db, actor, ActivityAction.CLIENT_UNASSIGNED, client_id,
               f"Unassigned {len(body.user_ids)} user(s) from '{client['name']}'")
    return success_response(data=client, message="Users unassigned")


@clients_router.delete("/{client_id}")
@require_permission("Clients", "Delete")
async def delete_client(
    request: Request, client_id: str,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Soft-delete a client by ID."""
    actor = get_current_user(request)
    result = await ClientService(db).delete_client(client_id)
    await _log(db, actor, ActivityAction.CLIENT_DELETED, client_id, "Deleted client")
    return success_response(data=result, message="Client deleted")
