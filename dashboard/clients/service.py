"""Client service: CRUD on clients plus user assignments."""

from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from fastapi import HTTPException, status

from dashboard.rbac import has_full_access
from dashboard.utils import parse_object_id, serialize_mongo_doc


class ClientService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.clients = db["clients"]
        self.users = db["users"]

    async def create_client(self, data: dict, created_by: str | None = None) -> dict:
        """Create a client. The creator is assigned to it."""
        existing = await self.clients.find_one(
            {"name": data["name"], "is_deleted": {"$ne": True}}
        )
        if existing:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Client '{data['name']}' already exists",
            )

        now = datetime.now(timezone.utc)
        doc = {
            **data,
            "assigned_user_ids": [created_by] if created_by else [],
            "is_deleted": False,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.clients.insert_one(doc)
        doc["_id"] = result.inserted_id
        return serialize_mongo_doc(doc)

    async def get_client(self, client_id: str) -> dict:
        oid = parse_object_id(client_id, "client ID")
        doc = await self.clients.find_one({"_id": oid, "is_deleted": {"$ne": True}})
        if not doc:
            raise HTTPException(status_code=404, detail="Client not found")
        return serialize_mongo_doc(doc)

    async def list_clients(
        self,
        user: Any,
        query: Optional[str] = None,
        client_type: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        """All clients for full access, otherwise only those assigned to ``user``."""
        filters: dict = {"is_deleted": {"$ne": True}}
        if not has_full_access(user):
            filters["assigned_user_ids"] = user["id"]
        if query:
            filters["$or"] = [
                {"name": {"$regex": query, "$options": "i"}},
                {"email": {"$regex": query, "$options": "i"}},
                {"company": {"$regex": query, "$options": "i"}},
            ]
        if client_type:
            filters["client_type"] = client_type

        total = await self.clients.count_documents(filters)
        cursor = self.clients.find(filters).skip(offset).limit(limit).sort("created_at", -1)
        docs = [serialize_mongo_doc(d) async for d in cursor]
        return docs, total

    async def update_client(self, client_id: str, update_data: dict) -> dict:
        """Update client fields. Only non-None fields are updated."""
        oid = parse_object_id(client_id, "client ID")
        update_data["updated_at"] = datetime.now(timezone.utc)
        clean = {k: v for k, v in update_data.items() if v is not None}
        result = await self.clients.find_one_and_update(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {"$set": clean},
            return_document=True,
        )
        if not result:
            raise HTTPException(status_code=404, detail="Client not found")
        return serialize_mongo_doc(result)

    async def _update_assignments(self, client_id: str, op: dict) -> dict:
        oid = parse_object_id(client_id, "client ID")
        result = await self.clients.find_one_and_update(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {**op, "$set": {"updated_at": datetime.now(timezone.utc)}},
            return_document=True,
        )
        if not result:
            raise HTTPException(status_code=404, detail="Client not found")
        return serialize_mongo_doc(result)

    async def assign_users(self, client_id: str, user_ids: list[str]) -> dict:
        oids = [parse_object_id(i, "user ID") for i in user_ids]
        found = await self.users.count_documents(
            {"_id": {"$in": oids}, "is_deleted": {"$ne": True}}
        )
        if found != len(set(oids)):
            raise HTTPException(status_code=400, detail="One or more users not found")
        return await self._update_assignments(
            client_id, {"$addToSet": {"assigned_user_ids": {"$each": user_ids}}}
        )

    async def unassign_users(self, client_id: str, user_ids: list[str]) -> dict:
        return await self._update_assignments(
            client_id, {"$pull": {"assigned_user_ids": {"$in": user_ids}}}
        )

    async def delete_client(self, client_id: str) -> dict:
        """Soft-delete a client (sets is_deleted=True)."""
        oid = parse_object_id(client_id, "client ID")
        result = await self.clients.update_one(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {"$set": {"is_deleted": True, "deleted_at": datetime.now(timezone.utc)}},
        )
        if result.modified_count == 0:
            raise HTTPException(status_code=404, detail="Client not found or already deleted")
        return {"message": "Client deleted successfully"}
