"""
Enrollment status transition table.

The table is the complete contract of the enrollment lifecycle. It is
built once at import time and exposed read-only; nothing at runtime may
add, remove, or widen a transition. Each row lists its targets in the
order they are shown to callers.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import FrozenSet, Iterable, Mapping, Optional, Tuple, Union

from credentialing.app.schemas.enrollment import EnrollmentStatus, ValidationResult

S = EnrollmentStatus

_TABLE: Mapping[EnrollmentStatus, Tuple[EnrollmentStatus, ...]] = MappingProxyType(
    {
        S.DISCOVERY: (S.DATA_COMPLETE, S.STOPPED),
        S.DATA_COMPLETE: (S.SUBMITTED, S.DISCOVERY, S.STOPPED),
        S.SUBMITTED: (S.PAYER_PROCESSING, S.DATA_COMPLETE, S.STOPPED),
        S.PAYER_PROCESSING: (S.APPROVED, S.DENIED, S.SUBMITTED, S.STOPPED),
        S.APPROVED: (S.ACTIVE, S.STOPPED),
        S.ACTIVE: (S.STOPPED,),
        # Restart only from the beginning
        S.STOPPED: (S.DISCOVERY,),
        # Resubmission required; never straight to active
        S.DENIED: (S.DISCOVERY,),
    }
)

del S

ALLOWED_TRANSITIONS: Mapping[EnrollmentStatus, FrozenSet[EnrollmentStatus]] = (
    MappingProxyType(
        {source: frozenset(targets) for source, targets in _TABLE.items()}
    )
)


def allowed_next(current: EnrollmentStatus) -> FrozenSet[EnrollmentStatus]:
    """Statuses reachable in one step from ``current``."""
    return ALLOWED_TRANSITIONS.get(current, frozenset())


def allowed_in_order(current: EnrollmentStatus) -> Tuple[EnrollmentStatus, ...]:
    """Same as ``allowed_next``, in table order."""
    return _TABLE.get(current, ())


def format_allowed(statuses: Iterable[EnrollmentStatus]) -> str:
    rendered = ", ".join(status.value for status in statuses)
    return rendered or "none"


def validate_transition(
    current: Optional[Union[EnrollmentStatus, str]],
    proposed: Union[EnrollmentStatus, str],
) -> ValidationResult:
    """
    Decide whether ``current -> proposed`` is a legal status change.

    An unset ``current`` (initial assignment) and an unchanged status
    (idempotent re-submission) are always legal. ``proposed`` must
    already be a member of ``EnrollmentStatus``; string values are
    coerced and a ValueError for anything else is a caller bug.
    """
    target = EnrollmentStatus(proposed)

    if not current:
        return ValidationResult.ok()

    source = EnrollmentStatus(current)
    if source is target:
        return ValidationResult.ok()

    allowed = allowed_in_order(source)
    if target in allowed:
        return ValidationResult.ok()

    return ValidationResult.fail(
        f"Invalid status transition from '{source.value}' to "
        f"'{target.value}'. Allowed transitions: {format_allowed(allowed)}"
    )
