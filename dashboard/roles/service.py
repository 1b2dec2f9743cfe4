"""Custom role service: CRUD on the roles collection."""

from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase
from fastapi import HTTPException, status

from dashboard.rbac import full_permissions, sanitize_permissions
from dashboard.utils import Logger, parse_object_id, serialize_mongo_doc

logger = Logger("roles")


class RoleService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.roles = db["roles"]
        self.users = db["users"]

    async def _user_count(self, role_id: str) -> int:
        return await self.users.count_documents(
            {"custom_role_id": role_id, "is_deleted": {"$ne": True}}
        )

    async def _get_raw(self, role_id: str) -> dict:
        oid = parse_object_id(role_id, "role ID")
        role = await self.roles.find_one({"_id": oid})
        if not role:
            raise HTTPException(status_code=404, detail="Role not found")
        return role

    async def _ensure_name_free(self, name: str) -> None:
        if await self.roles.find_one({"name": name}):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="A role with this name already exists",
            )

    @staticmethod
    def _ensure_editable(role: dict, verb: str) -> None:
        if role.get("is_system"):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"System roles cannot be {verb}",
            )

    async def list_roles(self) -> list[dict]:
        """System roles first, then by name, each with its user count."""
        cursor = self.roles.find({}).sort([("is_system", -1), ("name", 1)])
        roles = []
        async for doc in cursor:
            role = serialize_mongo_doc(doc)
            role["user_count"] = await self._user_count(role["id"])
            roles.append(role)
        return roles

    async def get_role(self, role_id: str) -> dict:
        role = serialize_mongo_doc(await self._get_raw(role_id))
        role["user_count"] = await self._user_count(role["id"])
        return role

    async def create_role(self, data: dict) -> dict:
        await self._ensure_name_free(data["name"])

        now = datetime.now(timezone.utc)
        full_access = bool(data.get("full_access"))
        doc = {
            "name": data["name"],
            "description": data.get("description"),
            "full_access": full_access,
            "is_team_manager": bool(data.get("is_team_manager")),
            "permissions": (
                full_permissions() if full_access
                else sanitize_permissions(data.get("permissions"))
            ),
            "is_system": False,
            "is_active": True,
            "created_at": now,
            "updated_at": now,
        }
        result = await self.roles.insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Created role", name=doc["name"], role_id=str(result.inserted_id))
        return serialize_mongo_doc(doc)

    async def update_role(self, role_id: str, data: dict) -> dict:
        existing = await self._get_raw(role_id)
        self._ensure_editable(existing, "modified")

        name = data.get("name")
        if name and name != existing["name"]:
            await self._ensure_name_free(name)

        full_access = data.get("full_access")
        if full_access is None:
            full_access = existing.get("full_access", False)

        if full_access:
            permissions = full_permissions()
        elif data.get("permissions") is not None:
            permissions = sanitize_permissions(data["permissions"])
        else:
            permissions = existing.get("permissions", {})

        update = {
            "name": name or existing["name"],
            "full_access": full_access,
            "permissions": permissions,
            "updated_at": datetime.now(timezone.utc),
        }
        if "description" in data:
            update["description"] = data["description"]
        if data.get("is_team_manager") is not None:
            update["is_team_manager"] = data["is_team_manager"]

        result = await self.roles.find_one_and_update(
            {"_id": existing["_id"]},
            {"$set": update},
            return_document=True,
        )
        logger.info("Updated role", name=result["name"], role_id=role_id)
        return serialize_mongo_doc(result)

    async def toggle_role(self, role_id: str) -> dict:
        """Flip ``is_active``. Users of a deactivated role are refused by AuthMiddleware."""
        existing = await self._get_raw(role_id)
        self._ensure_editable(existing, "deactivated")
        result = await self.roles.find_one_and_update(
            {"_id": existing["_id"]},
            {
                "$set": {
                    "is_active": not existing.get("is_active", True),
                    "updated_at": datetime.now(timezone.utc),
                }
            },
            return_document=True,
        )
        return serialize_mongo_doc(result)

    async def delete_role(self, role_id: str) -> dict:
        existing = await self._get_raw(role_id)
        self._ensure_editable(existing, "deleted")

        assigned = await self._user_count(role_id)
        if assigned > 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot delete role. {assigned} user(s) are assigned to this role.",
            )

        await self.roles.delete_one({"_id": existing["_id"]})
        logger.info("Deleted role", name=existing["name"], role_id=role_id)
        return {"message": "Role deleted successfully", "name": existing["name"]}
