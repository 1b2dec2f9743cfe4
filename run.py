"""
ASGI entrypoint.

    uvicorn run:app --reload
"""
from dashboard.app import app

__all__ = ["app"]
