"""
Client-facing error taxonomy.

Every error the credentialing API raises on purpose is a
``CredentialingError``. Each carries its HTTP status code and the JSON
payload rendered to the caller; all of them are recoverable by the
caller changing its input (nothing here is retried internally).
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse


class CredentialingError(Exception):
    """Base class for errors surfaced verbatim to the caller."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def payload(self) -> Dict[str, Any]:
        return {"error": self.message}

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ShapeError(CredentialingError):
    """Missing or malformed required field."""


class TransitionError(CredentialingError):
    """Illegal status change. Carries the allowed next states."""

    def __init__(self, message: str, allowed: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.allowed = list(allowed)

    @property
    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, "allowedTransitions": self.allowed}


class BusinessRuleError(CredentialingError):
    """Field-dependent constraint of the target status not met."""


class NotFoundError(CredentialingError):
    status_code = 404


class RateLimitExceeded(CredentialingError):
    """Too many requests. Carries a retry hint in seconds."""

    status_code = 429

    def __init__(self, message: str, retry_after: int) -> None:
        super().__init__(message)
        self.retry_after = retry_after

    @property
    def payload(self) -> Dict[str, Any]:
        return {"error": self.message, "retryAfter": self.retry_after}

    @property
    def headers(self) -> Optional[Dict[str, str]]:
        return {"Retry-After": str(self.retry_after)}


BODY_REQUIRED = "Request body is required"
BODY_NOT_JSON = "Request body is not valid JSON"
BODY_NOT_OBJECT = "Request body must be a JSON object"
VALIDATION_FAILED = "Request validation failed"


def describe_validation_error(exc: RequestValidationError) -> Tuple[int, str]:
    """
    Map a request validation failure to (status code, message).

    Body problems are caller input errors and answer 400 with the same
    ``{"error": ...}`` shape as every other rejection. Query and path
    problems keep FastAPI's 422.
    """
    for error in exc.errors():
        loc = tuple(error.get("loc") or ())
        if not loc or loc[0] != "body":
            continue
        kind = error.get("type")
        if kind == "json_invalid":
            return 400, BODY_NOT_JSON
        if len(loc) == 1:
            if kind == "missing":
                return 400, BODY_REQUIRED
            return 400, BODY_NOT_OBJECT
        field = ".".join(str(part) for part in loc[1:])
        return 400, f"Invalid field '{field}': {error.get('msg', 'invalid value')}"
    return 422, VALIDATION_FAILED


async def credentialing_error_handler(
    request: Request, exc: CredentialingError
) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.payload,
        headers=exc.headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    status_code, message = describe_validation_error(exc)
    if status_code == 422:
        return await request_validation_exception_handler(request, exc)
    return JSONResponse(status_code=status_code, content={"error": message})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CredentialingError, credentialing_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
