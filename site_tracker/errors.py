from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse


class ApiError(Exception):
    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message


class InvalidRequestError(ApiError):
    def __init__(self, message: str, code: str = "INVALID_REQUEST"):
        super().__init__(status_code=400, code=code, message=message)


class NotFoundError(ApiError):
    def __init__(self, entity: str):
        super().__init__(status_code=404, code="NOT_FOUND", message=f"{entity} not found")


class ReferenceNotFoundError(ApiError):
    """A foreign key in the payload points at a row that does not exist."""

    def __init__(self, message: str):
        super().__init__(status_code=404, code="REFERENCE_NOT_FOUND", message=message)


class ConflictError(ApiError):
    def __init__(self, message: str, code: str = "CONFLICT"):
        super().__init__(status_code=409, code=code, message=message)


def get_request_id(request: Request) -> str:
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return str(request_id)
    return "unknown"


def error_response(
    request: Request,
    *,
    status_code: int,
    code: str,
    message: str,
    details: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    payload: dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
            "request_id": get_request_id(request),
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    return JSONResponse(status_code=status_code, content=payload)


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, Any]]:
    details: list[dict[str, Any]] = []
    for item in errors:
        location = [str(part) for part in item.get("loc", ()) if part not in ("body", "query", "path")]
        details.append(
            {
                "field": ".".join(location) or None,
                "message": str(item.get("msg", "Invalid value")),
            }
        )
    return details
