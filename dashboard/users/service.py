"""User service: CRUD on the users collection plus snapshot loading."""

from datetime import datetime, timezone
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorDatabase
from fastapi import HTTPException, status
from bson import ObjectId

from dashboard.auth.helpers import hash_password
from dashboard.rbac import FULL_ACCESS_ROLES, LegacyRole, has_full_access
from dashboard.utils import Logger, parse_object_id, serialize_mongo_doc

logger = Logger("users")

# Fields of the role document copied into a user snapshot.
_SNAPSHOT_ROLE_FIELDS = ("name", "full_access", "is_team_manager", "permissions", "is_active")


def _safe(doc: dict) -> dict:
    safe = serialize_mongo_doc(doc)
    safe.pop("password", None)
    return safe


def _forbidden(message: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": "FORBIDDEN", "message": message},
    )


class UserService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.users = db["users"]
        self.roles = db["roles"]

    async def _assignable_role(self, role_id: str, actor: Any) -> dict:
        """The custom role ``actor`` is assigning, once it is known to be assignable."""
        oid = parse_object_id(role_id, "role ID")
        role = await self.roles.find_one({"_id": oid})
        if not role:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "ROLE_NOT_FOUND", "message": "Custom role not found"},
            )
        if not role.get("is_active", True):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"code": "ROLE_INACTIVE", "message": "Cannot assign inactive role"},
            )
        if role.get("full_access") and not has_full_access(actor):
            logger.warning(
                "Full access role assignment refused",
                actor_id=actor["id"], role_id=role_id,
            )
            raise _forbidden("Only users with full access can assign full access roles")
        return role

    @staticmethod
    def _check_legacy_role(role: Any, actor: Any) -> None:
        """Only full-access actors may hand out the superadmin and admin roles."""
        value = role.value if isinstance(role, LegacyRole) else role
        if value in FULL_ACCESS_ROLES and not has_full_access(actor):
            logger.warning("Legacy role grant refused", actor_id=actor["id"], role=value)
            raise _forbidden(f"Only users with full access can grant the {value} role")

    async def _apply_role_fields(self, data: dict, actor: Any, clearing: bool) -> None:
        """
        Validate ``role`` / ``custom_role_id`` in ``data`` against ``actor``.

        An assigned custom role decides the stored legacy role: ``admin`` for
        a full access role, ``employee`` otherwise.
        """
        if data.get("role") is not None:
            self._check_legacy_role(data["role"], actor)
        if data.get("custom_role_id"):
            role = await self._assignable_role(data["custom_role_id"], actor)
            data["role"] = (
                LegacyRole.ADMIN.value if role.get("full_access") else LegacyRole.EMPLOYEE.value
            )
        elif clearing and not has_full_access(actor):
            raise _forbidden("Only users with full access can remove a custom role")

    async def ensure_can_modify(self, user_id: str, actor: Any) -> None:
        """Full-access accounts can only be changed by full-access actors."""
        target = await self.get_snapshot(user_id)
        if target and has_full_access(target) and not has_full_access(actor):
            logger.warning(
                "Change to full access user refused",
                actor_id=actor["id"], target_id=user_id,
            )
            raise _forbidden("Only users with full access can modify this user")

    async def _ensure_users_exist(self, user_ids: list[str]) -> None:
        oids = [parse_object_id(i, "manager ID") for i in user_ids]
        if not oids:
            return
        found = await self.users.count_documents(
            {"_id": {"$in": oids}, "is_deleted": {"$ne": True}}
        )
        if found != len(set(oids)):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="One or more managers not found",
            )

    async def create_user(self, data: dict, actor: Any) -> dict:
        """Create a user. Hashes password, validates custom role and managers."""
        if await self.users.find_one({"email": data["email"]}):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="User with this email already exists",
            )
        await self._apply_role_fields(data, actor, clearing=False)
        created_by = actor["id"]
        manager_ids = list(dict.fromkeys(data.get("manager_ids") or []))
        await self._ensure_users_exist(manager_ids)

        now = datetime.now(timezone.utc)
        user_doc = {
            **data,
            "role": data.get("role") or "employee",
            "password": hash_password(data["password"]),
            "custom_role_id": data.get("custom_role_id") or None,
            "manager_ids": manager_ids,
            "is_active": data.get("is_active", True),
            "token_version": 0,
            "is_deleted": False,
            "created_by": created_by,
            "created_at": now,
            "updated_at": now,
        }

        result = await self.users.insert_one(user_doc)
        user_doc["_id"] = result.inserted_id
        return _safe(user_doc)

    async def get_user(self, user_id: str) -> dict:
        """Get a single user by ID (excludes password)."""
        oid = parse_object_id(user_id, "user ID")
        user = await self.users.find_one({"_id": oid, "is_deleted": {"$ne": True}})
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return _safe(user)

    async def find_by_email(self, email: str) -> Optional[dict]:
        """Raw user document (password included) for login."""
        return await self.users.find_one(
            {"email": email.lower(), "is_deleted": {"$ne": True}}
        )

    async def get_snapshot(self, user_id: str) -> Optional[dict]:
        """
        Fresh authorization snapshot: the user plus its custom role.

        Returns None for unknown ids. A dangling ``custom_role_id`` keeps the
        id (so legacy fallbacks stay off) with ``custom_role`` None.
        """
        if not user_id or not ObjectId.is_valid(user_id):
            return None
        user = await self.users.find_one(
            {"_id": ObjectId(user_id), "is_deleted": {"$ne": True}}
        )
        if not user:
            return None

        snapshot = _safe(user)
        snapshot.setdefault("manager_ids", [])
        snapshot.setdefault("token_version", 0)
        snapshot["custom_role"] = None

        role_id = snapshot.get("custom_role_id")
        if role_id and ObjectId.is_valid(role_id):
            role = await self.roles.find_one({"_id": ObjectId(role_id)})
            if role:
                snapshot["custom_role"] = {
                    "id": str(role["_id"]),
                    **{k: role.get(k) for k in _SNAPSHOT_ROLE_FIELDS},
                }
        return snapshot

    async def get_team_ids(self, manager_id: str) -> list[str]:
        """Ids of users managed by, or created by, ``manager_id``."""
        cursor = self.users.find(
            {
                "is_deleted": {"$ne": True},
                "$or": [{"manager_ids": manager_id}, {"created_by": manager_id}],
            },
            {"_id": 1},
        )
        return [str(doc["_id"]) async for doc in cursor]

    async def list_users(
        self,
        actor: Any,
        team_ids: list[str],
        query: Optional[str] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> tuple[list[dict], int]:
        """List users visible to ``actor``: everyone with full access, else self + team."""
        filters: dict = {"is_deleted": {"$ne": True}}
        if not has_full_access(actor):
            visible = [actor["id"], *team_ids]
            filters["_id"] = {"$in": [ObjectId(i) for i in visible if ObjectId.is_valid(i)]}
        if query:
            filters["$or"] = [
                {"name": {"$regex": query, "$options": "i"}},
                {"email": {"$regex": query, "$options": "i"}},
            ]

        total = await self.users.count_documents(filters)
        cursor = self.users.find(filters).skip(offset).limit(limit).sort("created_at", -1)
        users = [_safe(u) async for u in cursor]
        return users, total

    async def update_user(self, user_id: str, update_data: dict, actor: Any) -> dict:
        """
        Update user fields on behalf of ``actor``.

        ``custom_role_id: None`` detaches the custom role, which only a
        full-access actor may do. Role fields go through the same checks as
        on creation.
        """
        oid = parse_object_id(user_id, "user ID")
        await self.ensure_can_modify(user_id, actor)

        clear_role = "custom_role_id" in update_data and not update_data["custom_role_id"]
        await self._apply_role_fields(update_data, actor, clearing=clear_role)
        return await self._write(oid, update_data, clear_role=clear_role)

    async def _write(self, oid: ObjectId, update_data: dict, clear_role: bool = False) -> dict:
        if update_data.get("email"):
            clash = await self.users.find_one(
                {"email": update_data["email"].lower(), "_id": {"$ne": oid}}
            )
            if clash:
                raise HTTPException(
                    status_code=status.HTTP_409_CONFLICT,
                    detail="User with this email already exists",
                )
            update_data["email"] = update_data["email"].lower()
        if update_data.get("password"):
            update_data["password"] = hash_password(update_data["password"])

        update_data["updated_at"] = datetime.now(timezone.utc)
        clean = {k: v for k, v in update_data.items() if v is not None}
        if clear_role:
            clean["custom_role_id"] = None

        result = await self.users.find_one_and_update(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {"$set": clean},
            return_document=True,
        )
        if not result:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND, detail="User not found"
            )
        return _safe(result)

    async def set_managers(self, user_id: str, manager_ids: list[str]) -> dict:
        """Replace the list of users managing ``user_id``."""
        manager_ids = list(dict.fromkeys(manager_ids))
        if user_id in manager_ids:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="A user cannot manage themselves",
            )
        await self._ensure_users_exist(manager_ids)
        return await self._write(
            parse_object_id(user_id, "user ID"), {"manager_ids": manager_ids}
        )

    async def bump_token_version(self, user_id: str) -> None:
        """Invalidate every token issued so far for ``user_id``."""
        await self.users.update_one(
            {"_id": parse_object_id(user_id, "user ID")},
            {"$inc": {"token_version": 1}},
        )

    async def delete_user(self, user_id: str) -> dict:
        """Soft-delete a user (sets is_deleted=True, preserves data)."""
        oid = parse_object_id(user_id, "user ID")
        result = await self.users.update_one(
            {"_id": oid, "is_deleted": {"$ne": True}},
            {
                "$set": {"is_deleted": True, "deleted_at": datetime.now(timezone.utc)},
                "$inc": {"token_version": 1},
            },
        )
        if result.modified_count == 0:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found or already deleted",
            )
        return {"message": "User deleted successfully"}
