"""
Audited endpoints.

``@audited(...)`` marks an endpoint; routers created with
``route_class=AuditedRoute`` wrap marked endpoints so that their outcome
is recorded once the response is known. The wrapper observes only: the
response (or exception) reaches the caller unchanged.

Outcome mapping:
- response status >= 400, or any raised exception, is a failure
- the error message is the JSON body's ``error`` (or ``detail``)
- rate-limit rejections are skipped here; the limiter records them
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Dict, Optional, Tuple

from fastapi import Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.routing import APIRoute
from starlette.exceptions import HTTPException

from credentialing.app.errors import (
    CredentialingError,
    RateLimitExceeded,
    describe_validation_error,
)

logger = logging.getLogger("credentialing.audit")

UNKNOWN_ERROR = "Unknown error"

AUDIT_SPEC_ATTR = "__audit_spec__"

MetadataFactory = Callable[[Request], Dict[str, Any]]


@dataclass(frozen=True)
class AuditSpec:
    action: str
    resource: str
    resource_id_params: Tuple[str, ...] = ("id",)
    metadata: Optional[MetadataFactory] = None


def audited(
    action: str,
    resource: str,
    *,
    resource_id_params: Tuple[str, ...] = ("id",),
    metadata: Optional[MetadataFactory] = None,
):
    """
    Mark an endpoint for outcome auditing.

    Must be applied below the router decorator so the mark exists when
    the route is registered.
    """

    def decorator(endpoint):
        setattr(
            endpoint,
            AUDIT_SPEC_ATTR,
            AuditSpec(
                action=action,
                resource=resource,
                resource_id_params=tuple(resource_id_params),
                metadata=metadata,
            ),
        )
        return endpoint

    return decorator


def _error_from_body(response: Response) -> str:
    body = getattr(response, "body", None)
    if not body:
        return UNKNOWN_ERROR
    try:
        data = json.loads(body)
    except (TypeError, ValueError):
        return UNKNOWN_ERROR
    if isinstance(data, dict):
        message = data.get("error") or data.get("detail")
        if isinstance(message, str) and message:
            return message
    return UNKNOWN_ERROR


def _describe_exception(exc: Exception) -> Tuple[int, str]:
    if isinstance(exc, CredentialingError):
        return exc.status_code, exc.message
    if isinstance(exc, HTTPException):
        detail = exc.detail if isinstance(exc.detail, str) else UNKNOWN_ERROR
        return exc.status_code, detail
    if isinstance(exc, RequestValidationError):
        return describe_validation_error(exc)
    return 500, "Internal server error"


def _resource_id(request: Request, spec: AuditSpec) -> Optional[str]:
    for name in spec.resource_id_params:
        value = request.path_params.get(name)
        if value:
            return str(value)
    return None


def _metadata(request: Request, spec: AuditSpec, status_code: int) -> Dict[str, Any]:
    metadata: Dict[str, Any] = {}
    if spec.metadata is not None:
        try:
            metadata.update(spec.metadata(request))
        except Exception:
            logger.exception(
                "audit_metadata_failed", extra={"action": spec.action}
            )
    contributed = getattr(request.state, "audit_metadata", None)
    if isinstance(contributed, dict):
        metadata.update(contributed)
    metadata["statusCode"] = status_code
    return metadata


def _record(
    request: Request,
    spec: AuditSpec,
    status_code: int,
    error_message: Optional[str],
) -> None:
    recorder = getattr(request.app.state, "audit_recorder", None)
    if recorder is None:
        logger.warning(
            "audit_recorder_missing", extra={"action": spec.action}
        )
        return

    success = status_code < 400
    recorder.record_request(
        request,
        action=spec.action,
        resource=spec.resource,
        resource_id=_resource_id(request, spec),
        success=success,
        error_message=None if success else error_message,
        metadata=_metadata(request, spec, status_code),
    )


class AuditedRoute(APIRoute):
    """APIRoute that records the outcome of ``@audited`` endpoints."""

    def get_route_handler(
        self,
    ) -> Callable[[Request], Coroutine[Any, Any, Response]]:
        handler = super().get_route_handler()
        spec: Optional[AuditSpec] = getattr(self.endpoint, AUDIT_SPEC_ATTR, None)
        if spec is None:
            return handler

        async def audited_handler(request: Request) -> Response:
            try:
                response = await handler(request)
            except RateLimitExceeded:
                raise
            except Exception as exc:
                status_code, message = _describe_exception(exc)
                _record(request, spec, status_code, message)
                raise

            _record(
                request,
                spec,
                response.status_code,
                _error_from_body(response) if response.status_code >= 400 else None,
            )
            return response

        return audited_handler
