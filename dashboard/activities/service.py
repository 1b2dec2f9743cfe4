"""
Activity Service: record and query the activity log.

Collection: activity_logs

Usage from other services:
    activities = ActivityService(db)
    await activities.log(
        user_id=actor["id"],
        action=ActivityAction.CLIENT_UPDATED,
        description="Updated client 'Acme Roofing'",
        entity_type=EntityType.CLIENT,
        entity_id=client_id,
    )
"""

from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from dashboard.rbac import build_activity_filter
from dashboard.utils import Logger, serialize_mongo_doc
from .schemas import ActivityAction, EntityType

logger = Logger("activities")


def _value(v):
    return v.value if hasattr(v, "value") else v


class ActivityService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.logs = db["activity_logs"]

    async def log(
        self,
        user_id: str,
        action: ActivityAction | str,
        description: str = "",
        entity_type: EntityType | str | None = None,
        entity_id: str | None = None,
    ) -> dict:
        """Append one entry. Call after a successful mutation."""
        entry = {
            "user_id": user_id,
            "action": _value(action),
            "description": description,
            "entity_type": _value(entity_type),
            "entity_id": entity_id,
            "created_at": datetime.now(timezone.utc),
        }
        result = await self.logs.insert_one(entry)
        entry["_id"] = result.inserted_id
        logger.debug(
            "Activity recorded",
            user_id=user_id,
            action=entry["action"],
            entity_id=entity_id,
        )
        return serialize_mongo_doc(entry)

    async def list_activities(
        self,
        user: Any,
        team_ids: list[str],
        target: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        """
        Activities visible to ``user``, most recent first.

        Full access sees everything, users with Users/Read or Activities/Read
        see themselves plus ``team_ids``, everyone else sees only their own.
        """
        filters = build_activity_filter(user, team_ids, target=target, action=action)
        total = await self.logs.count_documents(filters)
        cursor = (
            self.logs.find(filters)
            .sort("created_at", -1)
            .skip(offset)
            .limit(limit)
        )
        docs = [serialize_mongo_doc(d) async for d in cursor]
        return docs, total

    async def stats(self, user: Any, team_ids: list[str]) -> dict:
        """Counts per action plus the ten most recent entries."""
        filters = build_activity_filter(user, team_ids)
        pipeline = [
            {"$match": filters},
            {"$group": {"_id": "$action", "count": {"$sum": 1}}},
            {"$sort": {"count": -1}},
        ]
        counts = [
            {"action": row["_id"], "count": row["count"]}
            async for row in self.logs.aggregate(pipeline)
        ]
        cursor = self.logs.find(filters).sort("created_at", -1).limit(10)
        recent = [serialize_mongo_doc(d) async for d in cursor]
        return {"stats": counts, "recent_activities": recent}
