from fastapi import APIRouter, Depends, Request
from motor.motor_asyncio import AsyncIOMotorDatabase

from dashboard.config import get_database
from dashboard.rbac.decorators import get_current_user
from dashboard.utils import success_response
from .schemas import LoginRequest
from .service import AuthService, profile

auth_router = APIRouter()


@auth_router.post("/login")
async def login(
    body: LoginRequest,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    """Authenticate user and return JWT + user data."""
    result = await AuthService(db).authenticate(
        email=body.email, password=body.password,
    )
    return success_response(data=result, message="Login successful")


@auth_router.get("/me")
async def me(request: Request):
    """The caller's snapshot plus every capability flag the UI renders against."""
    return success_response(data=profile(get_current_user(request)))


@auth_router.post("/logout")
async def logout(
    request: Request,
    db: AsyncIOMotorDatabase = Depends(get_database),
):
    user = get_current_user(request)
    await AuthService(db).logout(user["id"])
    return success_response(message="Logged out")
