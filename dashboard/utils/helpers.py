from datetime import datetime
from typing import Any, Optional
from bson import ObjectId
from fastapi import HTTPException, status
from fastapi.responses import JSONResponse


def serialize_mongo_doc(doc):
    """Recursively convert ObjectIds and datetimes in a MongoDB document.

    The top-level ``_id`` is also exposed as ``id``.
    """
    if not doc:
        return doc

    if isinstance(doc, list):
        return [serialize_mongo_doc(d) for d in doc]

    if isinstance(doc, dict):
        clean = {}
        for k, v in doc.items():
            if isinstance(v, ObjectId):
                clean[k] = str(v)
            elif isinstance(v, datetime):
                clean[k] = v.isoformat()
            elif isinstance(v, (dict, list)):
                clean[k] = serialize_mongo_doc(v)
            else:
                clean[k] = v
        if "_id" in clean and "id" not in clean:
            clean["id"] = clean["_id"]
        return clean

    return doc


def parse_object_id(id_str: str, label: str = "ID") -> ObjectId:
    """Convert a path/body string to ObjectId, raising 400 if malformed."""
    if not id_str or not ObjectId.is_valid(id_str):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {label}",
        )
    return ObjectId(id_str)


def success_response(
    data: Optional[Any] = None,
    message: str = "Success",
    code: int = 200,
) -> JSONResponse:
    """Standard success JSON response."""
    content = {"success": True, "message": message}
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=code, content=content)


def error_response(
    message: str,
    code: int = 400,
    error_code: Optional[str] = None,
    data: Optional[Any] = None,
) -> JSONResponse:
    """Standard error JSON response.

    ``error_code`` is the machine-readable reason (``AUTH_REQUIRED`` etc.);
    when omitted the HTTP status is used.
    """
    content = {
        "success": False,
        "error": {"code": error_code or code, "message": message},
    }
    if data is not None:
        content["data"] = data
    return JSONResponse(status_code=code, content=content)
