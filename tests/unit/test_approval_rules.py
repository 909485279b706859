"""Unit tests for auto-approval exposure and tenor checks"""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from factoring_engine.domain.approval import assess_auto_approval, max_tenor_days, total_exposure
from factoring_engine.domain.exceptions import (
    ExposureLimitExceededError,
    InvalidTransitionError,
    PolicyViolationError,
    TenorLimitExceededError,
)
from factoring_engine.domain.models import ResolvedParameters

NOW = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)


def make_params(credit_limit=100, exposure_ratio=1.0, operation_days=90, tenor_buffer_days=5):
    return ResolvedParameters(
        discount_rate=24,
        advance_pct=88,
        operation_days=operation_days,
        credit_limit=credit_limit,
        exposure_ratio=exposure_ratio,
        tenor_buffer_days=tenor_buffer_days,
        segment="default",
        source="global_default",
    )


def test_total_exposure_ignores_garbage():
    assert total_exposure([Decimal("10.5"), 20, "abc", None]) == Decimal("30.5")


def test_exposure_over_limit_is_policy_violation():
    """Two active requests summing to 101 against a limit of 100"""
    with pytest.raises(PolicyViolationError):
        assess_auto_approval("review", [60, 41], [], make_params(credit_limit=100), NOW)


def test_exposure_at_limit_passes():
    assessment = assess_auto_approval("review", [60, 40], [], make_params(credit_limit=100), NOW)
    assert assessment.total_exposure == 100
    assert assessment.exposure_limit == 100


def test_exposure_ratio_scales_limit():
    with pytest.raises(ExposureLimitExceededError):
        assess_auto_approval("review", [60], [], make_params(credit_limit=100, exposure_ratio=0.5), NOW)


def test_zero_credit_limit_skips_exposure_check():
    assessment = assess_auto_approval("review", [10**12], [], make_params(credit_limit=0), NOW)
    assert assessment.exposure_limit is None


def test_only_review_requests_qualify():
    with pytest.raises(InvalidTransitionError):
        assess_auto_approval("offered", [1], [], make_params(), NOW)


def test_status_checked_before_exposure():
    with pytest.raises(InvalidTransitionError):
        assess_auto_approval("accepted", [10_000], [], make_params(credit_limit=1), NOW)


def test_max_tenor_days_rounds_and_skips_unparseable():
    due_dates = [date(2025, 4, 2), "2025-05-01", "not a date", None]
    # 2025-05-01 00:00 is 58.5 days after 2025-03-03 12:00
    assert max_tenor_days(due_dates, NOW) == 59


def test_max_tenor_days_none_without_dates():
    assert max_tenor_days([None, ""], NOW) is None


def test_tenor_over_term_plus_buffer_fails():
    # 2025-06-08 is 96.5 days out; limit 90 + 5
    with pytest.raises(TenorLimitExceededError):
        assess_auto_approval("review", [1], [date(2025, 6, 8)], make_params(), NOW)


def test_tenor_at_limit_passes():
    # 2025-06-06 is 94.5 days out, rounds to 95
    assessment = assess_auto_approval("review", [1], [date(2025, 6, 6)], make_params(), NOW)
    assert assessment.max_tenor_days == 95
    assert assessment.tenor_limit_days == 95


def test_no_invoices_skips_tenor_check():
    assessment = assess_auto_approval("review", [1], [], make_params(operation_days=0, tenor_buffer_days=0), NOW)
    assert assessment.max_tenor_days is None
