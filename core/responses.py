"""
Standard response envelopes.

- Success: {"success": true, "data": ..., "message"?: str}
- Error:   {"success": false, "error": str, "code": str, "details"?: ...}
"""
from typing import Any, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def success_response(
    data: Any,
    status_code: int = status.HTTP_200_OK,
    message: Optional[str] = None,
    **extra: Any
) -> JSONResponse:
    """Wrap data in the success envelope. Extra keys are added at the top level."""
    content = {"success": True, "data": data}
    if message:
        content["message"] = message
    content.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def error_response(
    error: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    code: str = "INTERNAL_ERROR",
    details: Any = None
) -> JSONResponse:
    """Build the error envelope."""
    content = {"success": False, "error": error, "code": code}
    if details is not None:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))
