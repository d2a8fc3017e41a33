"""
Enrollment transition guard.

Composes the three lifecycle validators (transition table, business
rules, progress bounds) into a single verdict. The guard holds no state
and performs no I/O; the caller supplies the current status it fetched
from persistence.

Composition policy: every applicable validator runs and all failures
are collected in evaluation order (transition first, business rule
second). ``GuardVerdict.error`` is the first failure, which is what the
HTTP layer surfaces.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict

from credentialing.app.lifecycle.rules import (
    validate_business_rules,
    validate_progress,
)
from credentialing.app.lifecycle.transitions import (
    allowed_in_order,
    validate_transition,
)
from credentialing.app.schemas.enrollment import EnrollmentStatus


class FailureKind(str, Enum):
    TRANSITION = "transition"
    BUSINESS_RULE = "business_rule"
    PROGRESS = "progress"


class GuardFailure(BaseModel):
    """A single rejected check."""

    kind: FailureKind
    message: str

    # Only populated for transition failures
    allowed: Tuple[str, ...] = ()

    model_config = ConfigDict(frozen=True)


class GuardVerdict(BaseModel):
    """Aggregated outcome of all checks for one proposed change."""

    failures: Tuple[GuardFailure, ...] = ()

    model_config = ConfigDict(frozen=True)

    @property
    def valid(self) -> bool:
        return not self.failures

    @property
    def errors(self) -> Tuple[str, ...]:
        return tuple(failure.message for failure in self.failures)

    @property
    def error(self) -> Optional[str]:
        return self.failures[0].message if self.failures else None

    @property
    def first_failure(self) -> Optional[GuardFailure]:
        return self.failures[0] if self.failures else None


class EnrollmentTransitionGuard:
    """
    Stateless validator for proposed enrollment changes.

    Safe to share across concurrent requests.
    """

    def check(
        self,
        current: Optional[Union[EnrollmentStatus, str]],
        proposed: Union[EnrollmentStatus, str],
        payload: Optional[Mapping[str, Any]] = None,
    ) -> GuardVerdict:
        """
        Validate a status change together with its business rules.

        ``payload`` is the proposed enrollment state (stored fields
        overlaid with the request body).
        """
        target = EnrollmentStatus(proposed)
        failures = []

        transition = validate_transition(current, target)
        if not transition.valid:
            failures.append(
                GuardFailure(
                    kind=FailureKind.TRANSITION,
                    message=transition.error,
                    allowed=tuple(
                        status.value
                        for status in allowed_in_order(EnrollmentStatus(current))
                    ),
                )
            )

        business = validate_business_rules(target, payload or {})
        if not business.valid:
            failures.append(
                GuardFailure(
                    kind=FailureKind.BUSINESS_RULE,
                    message=business.error,
                )
            )

        return GuardVerdict(failures=tuple(failures))

    def check_progress(self, progress: Any) -> GuardVerdict:
        result = validate_progress(progress)
        if result.valid:
            return GuardVerdict()
        return GuardVerdict(
            failures=(
                GuardFailure(kind=FailureKind.PROGRESS, message=result.error),
            )
        )
