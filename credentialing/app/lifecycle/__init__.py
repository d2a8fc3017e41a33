from .transitions import (
    ALLOWED_TRANSITIONS,
    allowed_in_order,
    allowed_next,
    validate_transition,
)
from .rules import validate_business_rules, validate_progress
from .guard import EnrollmentTransitionGuard, FailureKind, GuardFailure, GuardVerdict

__all__ = [
    "ALLOWED_TRANSITIONS",
    "allowed_in_order",
    "allowed_next",
    "validate_transition",
    "validate_business_rules",
    "validate_progress",
    "EnrollmentTransitionGuard",
    "FailureKind",
    "GuardFailure",
    "GuardVerdict",
]
