"""
Field-level enrollment rules.

Two validators that sit beside the transition table:

- progress bounds (independent of status)
- cross-field business rules keyed by the *target* status

Both are pure: they read the values they are given and nothing else.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional, Union

from credentialing.app.schemas.enrollment import EnrollmentStatus, ValidationResult

PROGRESS_MIN = 0
PROGRESS_MAX = 100

PROGRESS_NOT_A_NUMBER = "Progress must be a number"
PROGRESS_OUT_OF_RANGE = (
    f"Progress must be between {PROGRESS_MIN} and {PROGRESS_MAX}"
)
PROGRESS_NOT_WHOLE = "Progress must be a whole number"

STOPPED_REASON_REQUIRED = (
    "Stopped reason is required when status is set to stopped"
)
PROVIDER_ID_REQUIRED = (
    "Provider ID is required when status is set to active or approved"
)


def validate_progress(progress: Any) -> ValidationResult:
    """
    Validate an enrollment progress value.

    Checks run in a fixed order (type, range, integrality) so that each
    rejection reason maps to exactly one message.
    """
    # bool is an int subclass; a flag is not a percentage
    if isinstance(progress, bool) or not isinstance(progress, (int, float)):
        return ValidationResult.fail(PROGRESS_NOT_A_NUMBER)

    if progress < PROGRESS_MIN or progress > PROGRESS_MAX:
        return ValidationResult.fail(PROGRESS_OUT_OF_RANGE)

    if isinstance(progress, float) and not progress.is_integer():
        return ValidationResult.fail(PROGRESS_NOT_WHOLE)

    return ValidationResult.ok()


def _text_field(data: Mapping[str, Any], *keys: str) -> Optional[str]:
    """First string value found under any of ``keys``, stripped."""
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value.strip()
    return None


def validate_business_rules(
    status: Union[EnrollmentStatus, str],
    data: Mapping[str, Any],
) -> ValidationResult:
    """
    Enforce cross-field requirements of a target status.

    ``data`` is the full proposed enrollment payload. Keys are accepted
    in camelCase (wire form) or snake_case.
    """
    target = EnrollmentStatus(status)

    if target is EnrollmentStatus.STOPPED:
        if not _text_field(data, "stoppedReason", "stopped_reason"):
            return ValidationResult.fail(STOPPED_REASON_REQUIRED)

    elif target in (EnrollmentStatus.ACTIVE, EnrollmentStatus.APPROVED):
        if not _text_field(data, "providerId", "provider_id"):
            return ValidationResult.fail(PROVIDER_ID_REQUIRED)

    return ValidationResult.ok()
