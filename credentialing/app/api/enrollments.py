"""
Enrollment status and progress endpoints.

Both mutations are validated by the transition guard before they reach
persistence, and both are audited whatever their outcome. Shape errors
(missing or non-enum values) are rejected before the guard runs.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from credentialing.app.api.dependencies import (
    get_enrollment_store,
    get_guard,
)
from credentialing.app.audit.route import AuditedRoute, audited
from credentialing.app.errors import (
    BusinessRuleError,
    NotFoundError,
    ShapeError,
    TransitionError,
)
from credentialing.app.lifecycle.guard import (
    EnrollmentTransitionGuard,
    FailureKind,
)
from credentialing.app.schemas.enrollment import (
    EnrollmentRecord,
    EnrollmentStatus,
)
from credentialing.app.storage.memory import InMemoryEnrollmentStore

logger = logging.getLogger("credentialing.api.enrollments")

router = APIRouter(
    prefix="/enrollments",
    tags=["Enrollments"],
    route_class=AuditedRoute,
)

PAYER_ENROLLMENT = "payer_enrollment"

# Payload fields persisted alongside a status change
_STATUS_FIELDS = {
    "stoppedReason": "stopped_reason",
    "providerId": "provider_id",
}


def _serialize(record: EnrollmentRecord) -> Dict[str, Any]:
    return record.model_dump(mode="json", by_alias=True)


def _load(store: InMemoryEnrollmentStore, enrollment_id: str) -> EnrollmentRecord:
    record = store.get(enrollment_id)
    if record is None:
        raise NotFoundError(f"Enrollment '{enrollment_id}' not found")
    return record


def _parse_status(raw: Any) -> EnrollmentStatus:
    if raw is None or raw == "":
        raise ShapeError("Status is required")
    try:
        return EnrollmentStatus(raw)
    except ValueError:
        raise ShapeError(
            f"Invalid status '{raw}'. "
            f"Allowed values: {', '.join(EnrollmentStatus.values())}"
        )


@router.get("/{id}", summary="Fetch an enrollment")
async def get_enrollment(
    id: str,
    store: Annotated[InMemoryEnrollmentStore, Depends(get_enrollment_store)],
) -> Dict[str, Any]:
    return _serialize(_load(store, id))


@router.patch("/{id}/status", summary="Change an enrollment's status")
@audited("update_status", PAYER_ENROLLMENT)
async def update_status(
    id: str,
    request: Request,
    payload: Annotated[Dict[str, Any], Body()],
    guard: Annotated[EnrollmentTransitionGuard, Depends(get_guard)],
    store: Annotated[InMemoryEnrollmentStore, Depends(get_enrollment_store)],
) -> Dict[str, Any]:
    target = _parse_status(payload.get("status"))
    record = _load(store, id)

    request.state.audit_metadata = {
        "fromStatus": record.status.value if record.status else None,
        "toStatus": target.value,
    }

    # Business rules see the stored record overlaid with the request
    proposed = {**_serialize(record), **payload}
    verdict = guard.check(record.status, target, proposed)

    failure = verdict.first_failure
    if failure is not None:
        logger.info(
            "enrollment_status_rejected",
            extra={
                "enrollment_id": id,
                "from_status": record.status.value if record.status else None,
                "to_status": target.value,
                "errors": list(verdict.errors),
            },
        )
        if failure.kind is FailureKind.TRANSITION:
            raise TransitionError(failure.message, allowed=failure.allowed)
        raise BusinessRuleError(failure.message)

    changes: Dict[str, Any] = {"status": target}
    for wire_name, field_name in _STATUS_FIELDS.items():
        value = payload.get(wire_name)
        if isinstance(value, str) and value.strip():
            changes[field_name] = value.strip()
    # A stop reason only describes the stopped state
    if target is not EnrollmentStatus.STOPPED:
        changes["stopped_reason"] = None

    updated = store.update(id, **changes)

    logger.info(
        "enrollment_status_updated",
        extra={"enrollment_id": id, "to_status": target.value},
    )
    return _serialize(updated)


@router.patch("/{id}/progress", summary="Change an enrollment's progress")
@audited("update_progress", PAYER_ENROLLMENT)
async def update_progress(
    id: str,
    request: Request,
    payload: Annotated[Dict[str, Any], Body()],
    guard: Annotated[EnrollmentTransitionGuard, Depends(get_guard)],
    store: Annotated[InMemoryEnrollmentStore, Depends(get_enrollment_store)],
) -> Dict[str, Any]:
    progress = payload.get("progress")
    if progress is None:
        raise ShapeError("Progress is required")

    verdict = guard.check_progress(progress)
    if not verdict.valid:
        raise ShapeError(verdict.error)

    record = _load(store, id)
    request.state.audit_metadata = {
        "fromProgress": record.progress,
        "toProgress": int(progress),
    }

    updated = store.update(id, progress=int(progress))
    return _serialize(updated)
