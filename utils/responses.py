"""
Response envelope helpers.

Every endpoint answers with ``{success, message, data?, errors?}``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


def _dump(data: Any) -> Any:
    if isinstance(data, BaseModel):
        return data.model_dump(by_alias=True, mode="json")
    if isinstance(data, dict):
        return {key: _dump(value) for key, value in data.items()}
    return jsonable_encoder(data)


def success_response(
    message: str,
    data: Any = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": True, "message": message}
    if data is not None:
        body["data"] = _dump(data)
    return JSONResponse(status_code=status_code, content=body)


def error_response(
    message: str,
    errors: Optional[List[Any]] = None,
    status_code: int = status.HTTP_400_BAD_REQUEST,
    headers: Optional[Mapping[str, str]] = None,
) -> JSONResponse:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = jsonable_encoder(errors)
    return JSONResponse(status_code=status_code, content=body, headers=dict(headers) if headers else None)
