"""
Cacophony API - Response envelope

Every endpoint answers with ``{"statusCode": ..., "messages": [...], ...payload}``.
"""
from typing import Any, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def envelope(status_code: int, messages: Optional[List[str]] = None, **payload: Any) -> dict:
    content = {"statusCode": status_code, "messages": list(messages or [])}
    content.update(jsonable_encoder(payload, by_alias=True))
    return content


def send(status_code: int = 200, messages: Optional[List[str]] = None, **payload: Any) -> JSONResponse:
    """Build a JSON response wrapped in the standard envelope."""
    return JSONResponse(
        status_code=status_code,
        content=envelope(status_code, messages, **payload)
    )
