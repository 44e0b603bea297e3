"""Structured error helpers for API responses."""

from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


def build_error_payload(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    payload = {"error": {"code": code, "message": message}}
    if details is not None:
        payload["error"]["details"] = details
    return payload


class AppError(Exception):
    """Application-scoped error for standardized API responses."""

    status_code = 500
    code = "internal_error"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code
        if code is not None:
            self.code = code
        self.message = message
        self.payload = build_error_payload(self.code, message, details)


class NotFoundError(AppError):
    """Referenced user, repository or fact does not exist."""

    status_code = 404
    code = "not_found"


class PermissionDeniedError(AppError):
    """Caller is not allowed to perform the mutation."""

    status_code = 403
    code = "permission_denied"


class ValidationError(AppError):
    """Missing or malformed field in a request."""

    status_code = 400
    code = "validation_error"


class AuthenticationRequiredError(AppError):
    status_code = 401
    code = "authentication_required"


class UpstreamError(AppError):
    """The repository-hosting API failed or answered unexpectedly."""

    status_code = 502
    code = "upstream_error"


async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.payload)


async def request_validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    fields = [".".join(str(part) for part in err.get("loc", ()) if part != "body") for err in exc.errors()]
    return JSONResponse(
        status_code=400,
        content=build_error_payload(
            "validation_error",
            "Missing or invalid fields",
            {"fields": [f for f in fields if f]},
        ),
    )
