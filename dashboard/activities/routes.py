"""
Activity Routes: the activity log, filtered by what the caller may see.

Endpoints:
    GET  /          Paginated activity listing (filter by target, action)
    GET  /stats     Counts per action plus the most recent entries
"""

from fastapi import APIRouter, Depends, Request, Query
from motor.motor_asyncio import AsyncIOMotorDatabase
from typing import Optional

from dashboard.config import get_database
from dashboard.rbac.decorators import get_current_user, require_permission
from dashboard.users.service import UserService
from dashboard.utils import success_response
from .service import ActivityService

activities_router = APIRouter()


@activities_router.get("/")
async def list_activities(
    request: Request,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    target: Optional[str] = Query(None, description="user, client, role"),
    action: Optional[str] = Query(None, description="client_created, login, etc."),
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """
    Any authenticated user may call this; visibility narrows with permissions:
        - full access: every activity
        - Users/Read or Activities/Read: own + team activities
        - otherwise: own activities only
    """
    actor = get_current_user(request)
    team_ids = await UserService(db).get_team_ids(actor["id"])
    activities, total = await ActivityService(db).list_activities(
        actor, team_ids,
        target=target, action=action,
        limit=limit, offset=(page - 1) * limit,
    )
    return success_response(
        data={
            "activities": activities,
            "pagination": {
                "current": page,
                "pages": -(-total // limit),
                "total": total,
            },
        }
    )


@activities_router.get("/stats")
@require_permission("Activities", "Read")
async def activity_stats(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    actor = get_current_user(request)
    team_ids = await UserService(db).get_team_ids(actor["id"])
    return success_response(data=await ActivityService(db).stats(actor, team_ids))
