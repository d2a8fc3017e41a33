import pytest

from credentialing.app.lifecycle.rules import (
    PROGRESS_NOT_A_NUMBER,
    PROGRESS_NOT_WHOLE,
    PROGRESS_OUT_OF_RANGE,
    PROVIDER_ID_REQUIRED,
    STOPPED_REASON_REQUIRED,
    validate_business_rules,
    validate_progress,
)
from credentialing.app.schemas.enrollment import EnrollmentStatus as S


# ---------------------------------------------------------------------------
# Progress bounds
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "value,error",
    [
        (-1, PROGRESS_OUT_OF_RANGE),
        (0, None),
        (100, None),
        (101, PROGRESS_OUT_OF_RANGE),
        (50.5, PROGRESS_NOT_WHOLE),
        ("50", PROGRESS_NOT_A_NUMBER),
        (50.0, None),
        (None, PROGRESS_NOT_A_NUMBER),
        (True, PROGRESS_NOT_A_NUMBER),
        (150.5, PROGRESS_OUT_OF_RANGE),
        (float("inf"), PROGRESS_OUT_OF_RANGE),
    ],
)
def test_progress_bounds(value, error):
    result = validate_progress(value)

    assert result.valid is (error is None)
    assert result.error == error


def test_progress_rejection_messages_are_distinct():
    assert len({PROGRESS_NOT_A_NUMBER, PROGRESS_OUT_OF_RANGE, PROGRESS_NOT_WHOLE}) == 3


# ---------------------------------------------------------------------------
# Business rules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("reason", [None, "", "   ", "\t\n"])
def test_stopped_requires_reason(reason):
    payload = {"stoppedReason": reason, "providerId": "PRV-1"}

    result = validate_business_rules(S.STOPPED, payload)

    assert result.valid is False
    assert result.error == STOPPED_REASON_REQUIRED


def test_stopped_with_reason_is_valid_regardless_of_other_fields():
    assert validate_business_rules(
        S.STOPPED, {"stoppedReason": "Provider left the group"}
    ).valid is True


def test_stopped_reason_must_be_text():
    assert validate_business_rules(S.STOPPED, {"stoppedReason": 42}).valid is False


@pytest.mark.parametrize("target", [S.ACTIVE, S.APPROVED])
@pytest.mark.parametrize("provider_id", [None, "", "  "])
def test_active_and_approved_require_provider_id(target, provider_id):
    result = validate_business_rules(target, {"providerId": provider_id})

    assert result.valid is False
    assert result.error == PROVIDER_ID_REQUIRED


@pytest.mark.parametrize("target", [S.ACTIVE, S.APPROVED])
def test_provider_id_satisfies_rule(target):
    assert validate_business_rules(target, {"providerId": "PRV-9"}).valid is True


def test_snake_case_payload_keys_are_accepted():
    assert validate_business_rules(S.ACTIVE, {"provider_id": "PRV-9"}).valid is True
    assert validate_business_rules(
        S.STOPPED, {"stopped_reason": "Duplicate enrollment"}
    ).valid is True


@pytest.mark.parametrize(
    "target",
    [S.DISCOVERY, S.DATA_COMPLETE, S.SUBMITTED, S.PAYER_PROCESSING, S.DENIED],
)
def test_other_targets_have_no_constraints(target):
    assert validate_business_rules(target, {}).valid is True
