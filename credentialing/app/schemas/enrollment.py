"""
Enrollment lifecycle schemas.

Defines the closed set of payer-enrollment statuses and the records the
HTTP layer exchanges with the (external) persistence collaborator. The
status enum is a frozen contract: the transition table in
``credentialing.app.lifecycle.transitions`` is keyed by it.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# ---------------------------------------------------------------------------
# Enumerations (FROZEN CONTRACTS)
# ---------------------------------------------------------------------------


class EnrollmentStatus(str, Enum):
    """
    Lifecycle state of a single payer enrollment.

    Owned by the enrollment record. The guard validates proposed
    changes and never mutates a status itself.
    """

    DISCOVERY = "discovery"
    DATA_COMPLETE = "data_complete"
    SUBMITTED = "submitted"
    PAYER_PROCESSING = "payer_processing"
    APPROVED = "approved"
    ACTIVE = "active"
    DENIED = "denied"
    STOPPED = "stopped"

    @classmethod
    def values(cls) -> Tuple[str, ...]:
        return tuple(member.value for member in cls)


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------


class ValidationResult(BaseModel):
    """Outcome of a single validator."""

    valid: bool
    error: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @classmethod
    def ok(cls) -> "ValidationResult":
        return cls(valid=True)

    @classmethod
    def fail(cls, error: str) -> "ValidationResult":
        return cls(valid=False, error=error)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class EnrollmentRecord(BaseModel):
    """
    Stored state of a payer enrollment, as handed over by persistence.

    ``status`` is ``None`` until the first status is assigned.
    """

    id: str
    physician_id: str
    payer_id: str
    status: Optional[EnrollmentStatus] = None
    progress: int = Field(0, ge=0, le=100)
    provider_id: Optional[str] = None
    stopped_reason: Optional[str] = None

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )
