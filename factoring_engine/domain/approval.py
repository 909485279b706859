"""Auto-approval gate - exposure and tenor checks against resolved parameters"""

from datetime import date, datetime
from decimal import Decimal
from typing import Iterable, Optional, Union

from factoring_engine.domain.exceptions import (
    ExposureLimitExceededError,
    InvalidTransitionError,
    TenorLimitExceededError,
)
from factoring_engine.domain.lifecycle import parse_status
from factoring_engine.domain.models import ExposureAssessment, RequestStatus, ResolvedParameters
from factoring_engine.utils.date_utils import days_between, parse_due_date
from factoring_engine.utils.numbers import to_decimal


def total_exposure(amounts: Iterable[object]) -> Decimal:
    """Sum of requested amounts; unparseable values count as zero"""
    total = Decimal(0)
    for amount in amounts:
        total += to_decimal(amount) or Decimal(0)
    return total


def max_tenor_days(due_dates: Iterable[Union[date, datetime, str, None]], now: datetime) -> Optional[int]:
    """Longest days-to-due across invoices, ignoring missing or unparseable dates"""
    tenors = []
    for value in due_dates:
        due = parse_due_date(value)
        if due is not None:
            tenors.append(days_between(now, due))
    return max(tenors) if tenors else None


def assess_auto_approval(
    status: Union[str, RequestStatus],
    active_amounts: Iterable[object],
    due_dates: Iterable[Union[date, datetime, str, None]],
    params: ResolvedParameters,
    now: datetime,
) -> ExposureAssessment:
    """
    Run the auto-approval checks in order.

    1. Only requests in review qualify.
    2. Aggregate exposure (active requests, current included) must not
       exceed credit_limit * exposure_ratio when a limit is configured.
    3. The longest invoice tenor must not exceed the term plus buffer.

    Raises:
        InvalidTransitionError: request is not in review
        ExposureLimitExceededError: exposure above limit
        TenorLimitExceededError: invoice tenor above limit
    """
    if parse_status(status) != RequestStatus.REVIEW:
        raise InvalidTransitionError("Solo solicitudes en revisión pueden aprobarse automáticamente")

    exposure = total_exposure(active_amounts)
    credit_limit = to_decimal(params.credit_limit) or Decimal(0)
    exposure_limit = None
    if credit_limit > 0:
        exposure_limit = credit_limit * Decimal(str(params.exposure_ratio))
        if exposure > exposure_limit:
            raise ExposureLimitExceededError()

    tenor_limit = params.operation_days + params.tenor_buffer_days
    max_tenor = max_tenor_days(due_dates, now)
    if max_tenor is not None and max_tenor > tenor_limit:
        raise TenorLimitExceededError()

    return ExposureAssessment(
        total_exposure=exposure,
        exposure_limit=exposure_limit,
        max_tenor_days=max_tenor,
        tenor_limit_days=tenor_limit,
    )
