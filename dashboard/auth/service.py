"""Authentication service: login, logout and the caller's profile."""

from datetime import datetime, timezone

from motor.motor_asyncio import AsyncIOMotorDatabase
from fastapi import HTTPException, status

from dashboard.activities.schemas import ActivityAction, EntityType
from dashboard.activities.service import ActivityService
from dashboard.rbac import capabilities
from dashboard.users.service import UserService
from dashboard.utils import Logger
from .helpers import create_access_token, verify_password

logger = Logger("auth")


class AuthService:
    def __init__(self, db: AsyncIOMotorDatabase):
        self.db = db
        self.user_service = UserService(db)
        self.activities = ActivityService(db)

    async def authenticate(self, email: str, password: str) -> dict:
        """
        1. Look up the user by email and verify the password.
        2. Refuse inactive accounts.
        3. Issue a JWT bound to the current token version.
        """
        user = await self.user_service.find_by_email(email)
        if not user or not verify_password(password, user.get("password", "")):
            logger.warning("Failed login", email=email)
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid credentials",
            )

        if not user.get("is_active", True):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Account is deactivated",
            )

        user_id = str(user["_id"])
        token = create_access_token(user_id, user.get("token_version", 0))

        await self.user_service.users.update_one(
            {"_id": user["_id"]},
            {"$set": {"last_login": datetime.now(timezone.utc)}},
        )
        await self.activities.log(
            user_id=user_id,
            action=ActivityAction.LOGIN,
            description="Logged in",
            entity_type=EntityType.USER,
            entity_id=user_id,
        )

        snapshot = await self.user_service.get_snapshot(user_id)
        return {
            "access_token": token,
            "token_type": "bearer",
            "user": profile(snapshot),
        }

    async def logout(self, user_id: str) -> None:
        """Revoke every token issued to the user."""
        await self.user_service.bump_token_version(user_id)
        await self.activities.log(
            user_id=user_id,
            action=ActivityAction.LOGOUT,
            description="Logged out",
            entity_type=EntityType.USER,
            entity_id=user_id,
        )


def profile(snapshot: dict) -> dict:
    """The snapshot as returned to the frontend, with its capabilities."""
    data = {k: v for k, v in snapshot.items() if k not in ("password", "token_version")}
    data["capabilities"] = capabilities(snapshot)
    return data
