"""Unit tests for disbursement readiness and account resolution"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from factoring_engine.domain.disbursement import (
    can_refresh_payment,
    ensure_disbursable,
    resolve_disbursement_account,
)
from factoring_engine.domain.exceptions import (
    InvalidBankAccountError,
    InvalidTransitionError,
    NoBankAccountError,
    NotReadyForDisbursementError,
)
from factoring_engine.domain.models import BankAccount

COMPANY_ID = uuid.uuid4()
T0 = datetime(2025, 1, 1, tzinfo=timezone.utc)


def account(is_default=False, created_at=T0):
    return BankAccount(id=uuid.uuid4(), company_id=COMPANY_ID, is_default=is_default, created_at=created_at)


@pytest.mark.parametrize("status", ["accepted", "signed"])
def test_ready_statuses(status):
    assert ensure_disbursable(status) is False


@pytest.mark.parametrize("status", ["review", "offered", "cancelled", "archived", "funded"])
def test_not_ready_statuses(status):
    with pytest.raises(NotReadyForDisbursementError) as exc_info:
        ensure_disbursable(status)
    assert exc_info.value.message == "La solicitud aún no está lista para desembolso"


def test_not_ready_is_an_invalid_transition():
    with pytest.raises(InvalidTransitionError):
        ensure_disbursable("review")


def test_funded_with_payment_is_a_replay():
    assert ensure_disbursable("funded", has_outbound_payment=True) is True


@pytest.mark.parametrize(
    "status,refreshable",
    [("pending", True), ("failed", True), (None, True), ("processing", False), ("paid", False)],
)
def test_only_unsettled_payments_are_refreshed(status, refreshable):
    assert can_refresh_payment(status) is refreshable


def test_no_accounts():
    with pytest.raises(NoBankAccountError):
        resolve_disbursement_account([])


def test_requested_account_wins():
    first, second = account(is_default=True), account()
    assert resolve_disbursement_account([first, second], requested_id=second.id) == second.id


def test_requested_account_from_other_company():
    with pytest.raises(InvalidBankAccountError):
        resolve_disbursement_account([account()], requested_id=uuid.uuid4())


def test_previous_account_reused_when_still_registered():
    default, previous = account(is_default=True), account()
    assert resolve_disbursement_account([default, previous], previous_id=previous.id) == previous.id


def test_stale_previous_account_falls_through_to_default():
    default, other = account(is_default=True), account()
    assert resolve_disbursement_account([other, default], previous_id=uuid.uuid4()) == default.id


def test_default_flag_beats_age():
    older = account(created_at=T0)
    default = account(is_default=True, created_at=T0 + timedelta(days=10))
    assert resolve_disbursement_account([older, default]) == default.id


def test_oldest_account_without_default():
    newer = account(created_at=T0 + timedelta(days=3))
    older = account(created_at=T0.replace(tzinfo=None))
    assert resolve_disbursement_account([newer, older]) == older.id
