"""
Authentication middleware.

Runs on every request (except PUBLIC_ROUTES):
  1. Decode the Bearer JWT → sub, token_version, type
  2. Load a fresh user snapshot (user + custom role) so permission
     changes apply on the next request
  3. Refuse unknown, inactive, revoked or role-less users
  4. Set request.state.user for the route guards
"""

from jose import ExpiredSignatureError, JWTError
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from dashboard.auth.helpers import ACCESS_TOKEN_TYPE, decode_access_token
from dashboard.config import get_database
from dashboard.users.service import UserService
from dashboard.utils import Logger, error_response

logger = Logger("auth")

# Routes that skip authentication
PUBLIC_ROUTES = [
    "/login",
    "/health",
    "/openapi.json",
    "/api/docs",
    "/redoc",
]


async def load_user_snapshot(user_id: str) -> dict | None:
    db = await get_database()
    return await UserService(db).get_snapshot(user_id)


def _unauthorized(code: str, message: str):
    return error_response(message, code=401, error_code=code)


def _forbidden(code: str, message: str):
    return error_response(message, code=403, error_code=code)


class AuthMiddleware(BaseHTTPMiddleware):
    """JWT verification + user snapshot loading."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)

        path = request.url.path
        if any(path.endswith(route) for route in PUBLIC_ROUTES):
            return await call_next(request)

        # ── Extract & decode JWT ─────────────────────────────────
        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return _unauthorized("AUTH_TOKEN_MISSING", "Authentication token is required")
        token = auth_header.split(" ", 1)[1].strip()

        try:
            payload = decode_access_token(token)
        except ExpiredSignatureError:
            return _unauthorized("AUTH_TOKEN_EXPIRED", "Token has expired")
        except JWTError:
            return _unauthorized("AUTH_TOKEN_INVALID", "Invalid token")

        if payload.get("type") != ACCESS_TOKEN_TYPE:
            return _unauthorized("AUTH_INVALID_TOKEN_TYPE", "Invalid token type")

        # ── Fresh snapshot ───────────────────────────────────────
        user = await load_user_snapshot(payload.get("sub"))
        if not user:
            logger.warning("Token valid but user not found", user_id=payload.get("sub"))
            return _unauthorized("AUTH_USER_NOT_FOUND", "User not found")

        if not user.get("is_active", True):
            logger.warning("Inactive user attempted access", user_id=user["id"], path=path)
            return _forbidden("AUTH_ACCOUNT_INACTIVE", "Account is inactive")

        if payload.get("token_version", 0) != user.get("token_version", 0):
            logger.warning(
                "Token version mismatch - token revoked",
                user_id=user["id"],
                token_version=payload.get("token_version"),
                current_version=user.get("token_version"),
            )
            return _unauthorized("AUTH_TOKEN_REVOKED", "Token has been revoked")

        custom_role = user.get("custom_role")
        if custom_role is not None and custom_role.get("is_active") is False:
            logger.warning(
                "User's custom role is deactivated",
                user_id=user["id"],
                custom_role=custom_role.get("name"),
            )
            return _forbidden("AUTH_NO_ROLE", "No active role assigned")

        request.state.user = user
        return await call_next(request)
