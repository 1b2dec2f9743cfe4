"""
Reporting Dashboard: main application.

Assembles all packages: config, middleware, auth, users, roles, clients,
activities.
"""

import time
import traceback
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from dashboard.config import settings, db_manager
from dashboard.middleware import AuthMiddleware
from dashboard.utils import Logger, error_response

# ── Route imports ────────────────────────────────────────────────
from dashboard.auth.routes import auth_router
from dashboard.users.routes import users_router
from dashboard.roles.routes import roles_router
from dashboard.clients.routes import clients_router
from dashboard.activities.routes import activities_router

logger = Logger("request")


# ── Request Logging Middleware ───────────────────────────────────
class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs every request: method, path, status code, and duration."""

    async def dispatch(self, request: Request, call_next):
        start = time.time()
        method = request.method
        path = request.url.path
        client = request.client.host if request.client else "unknown"

        logger.info(f"--> {method} {path} (from {client})")

        try:
            response = await call_next(request)
        except Exception as exc:
            duration = round((time.time() - start) * 1000, 2)
            logger.error(f"<-- {method} {path} | 500 | {duration}ms")
            logger.error(f"    Exception: {exc}")
            logger.error(traceback.format_exc())
            raise

        duration = round((time.time() - start) * 1000, 2)
        status = response.status_code

        if status >= 500:
            logger.error(f"<-- {method} {path} | {status} | {duration}ms")
        elif status >= 400:
            logger.warning(f"<-- {method} {path} | {status} | {duration}ms")
        else:
            logger.info(f"<-- {method} {path} | {status} | {duration}ms")

        return response


# ── Lifespan ─────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    await db_manager.connect()
    yield
    db_manager.close()


def _http_exception_response(exc: HTTPException) -> JSONResponse:
    """HTTPException → {"success": false, "error": {"code", "message"}}."""
    detail = exc.detail
    if isinstance(detail, dict) and "message" in detail:
        response = error_response(
            detail["message"], code=exc.status_code, error_code=detail.get("code"),
        )
    else:
        response = error_response(str(detail), code=exc.status_code)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


# ── App factory ──────────────────────────────────────────────────
def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Marketing reporting dashboard with custom-role access control",
        docs_url="/api/docs",
        lifespan=lifespan,
    )

    # Starlette runs the last-added middleware first: CORS → logging → auth.
    app.add_middleware(AuthMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allowed_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allowed_methods,
        allow_headers=settings.cors_allowed_headers,
    )

    # ── Exception handlers ───────────────────────────────────
    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _http_exception_response(exc)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception on {request.method} {request.url.path}:")
        logger.error(traceback.format_exc())
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": {
                    "code": 500,
                    "message": str(exc) if settings.debug else "Internal server error",
                },
                "timestamp": datetime.now(timezone.utc).isoformat(),
            },
        )

    # ── Routes ───────────────────────────────────────────────
    v = settings.api_version  # "v1"

    app.include_router(auth_router, prefix=f"/api/{v}/auth", tags=["Authentication"])
    app.include_router(users_router, prefix=f"/api/{v}/users", tags=["Users"])
    app.include_router(roles_router, prefix=f"/api/{v}/roles", tags=["Roles & Permissions"])
    app.include_router(clients_router, prefix=f"/api/{v}/clients", tags=["Clients"])
    app.include_router(
        activities_router, prefix=f"/api/{v}/activities", tags=["Activities"]
    )

    # ── Health check ─────────────────────────────────────────
    @app.get("/health")
    async def health():
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "database": db_manager.is_connected,
        }

    return app


# ── Create the app instance ──────────────────────────────────────
app = create_app()
