"""Offer calculator - prices advance, fees and net proceeds for a funding request"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from factoring_engine.config import Settings, settings as default_settings
from factoring_engine.domain.exceptions import ValidationError
from factoring_engine.domain.models import CustomOfferInput, OfferMode, OfferTerms
from factoring_engine.utils.date_utils import add_days, utc_now
from factoring_engine.utils.numbers import clamp, round_half_up, to_decimal, to_number

# Bounds for staff-supplied (custom) pricing
ANNUAL_RATE_PCT_RANGE = (0.0, 200.0)
ADVANCE_PCT_RANGE = (0.0, 100.0)
VALID_FOR_DAYS_RANGE = (1, 90)


def _requested(amount: Any) -> Decimal:
    requested = to_decimal(amount)
    if requested is None or requested <= 0:
        raise ValidationError("El monto solicitado debe ser mayor a cero")
    return requested


def standard_processing_fee(requested_amount: Any, config: Settings = default_settings) -> int:
    """0.5% of the requested amount, bounded to [min, max]"""
    requested = _requested(requested_amount)
    fee = round_half_up(requested * Decimal(str(config.offer_processing_fee_rate)))
    return int(clamp(fee, config.offer_processing_fee_min, config.offer_processing_fee_max))


def net_amount(requested: Decimal, advance_pct: float, processing_fee: int, wire_fee: int) -> int:
    """
    Advance minus fees, never negative.

    Fees larger than the advance clamp the result to 0 rather than failing.
    """
    advance = requested * Decimal(str(advance_pct)) / Decimal(100)
    return max(0, round_half_up(advance - processing_fee - wire_fee))


def compute_offer(
    requested_amount: Any,
    *,
    annual_rate: Optional[float] = None,
    advance_pct: Optional[float] = None,
    now: Optional[datetime] = None,
    mode: OfferMode = OfferMode.STANDARD,
    config: Settings = default_settings,
) -> OfferTerms:
    """
    Standard-mode offer.

    Uses the configured rate (30% EA) and advance (85%) unless resolved
    parameters are supplied, a processing fee of 0.5% clamped to
    [50_000, 200_000], a fixed wire fee, and a 7-day validity window.

    Example:
        10_000_000 requested -> advance 8_500_000, fees 50_000 + 5_000,
        net 8_445_000
    """
    requested = _requested(requested_amount)
    now = now or utc_now()

    rate = config.offer_annual_rate if annual_rate is None else annual_rate
    advance = config.offer_advance_pct if advance_pct is None else advance_pct
    processing = standard_processing_fee(requested, config)
    wire = config.offer_wire_fee

    return OfferTerms(
        annual_rate=rate,
        advance_pct=advance,
        fees={"processing": processing, "wire": wire},
        net_amount=net_amount(requested, advance, processing, wire),
        valid_until=add_days(now, config.offer_valid_days),
        mode=mode,
    )


def compute_custom_offer(
    requested_amount: Any,
    custom: CustomOfferInput,
    *,
    now: Optional[datetime] = None,
    config: Settings = default_settings,
) -> OfferTerms:
    """
    Manual offer built from staff input.

    Each field falls back to its default when missing or non-finite, then
    is clamped: annual rate % to [0, 200], advance % to [0, 100], fees to
    >= 0 (rounded), validity to [1, 90] days (rounded).
    """
    requested = _requested(requested_amount)
    now = now or utc_now()

    annual_pct = to_number(custom.annual_rate_pct)
    annual_pct = config.offer_annual_rate * 100 if annual_pct is None else clamp(annual_pct, *ANNUAL_RATE_PCT_RANGE)

    advance_pct = to_number(custom.advance_pct)
    advance_pct = config.offer_advance_pct if advance_pct is None else clamp(advance_pct, *ADVANCE_PCT_RANGE)

    processing = to_number(custom.processing_fee)
    processing = (
        standard_processing_fee(requested, config)
        if processing is None
        else max(0, round_half_up(processing))
    )

    wire = to_number(custom.wire_fee)
    wire = config.offer_wire_fee if wire is None else max(0, round_half_up(wire))

    valid_days = to_number(custom.valid_for_days)
    valid_days = (
        config.offer_valid_days
        if valid_days is None
        else int(clamp(round_half_up(valid_days), *VALID_FOR_DAYS_RANGE))
    )

    return OfferTerms(
        annual_rate=annual_pct / 100,
        advance_pct=advance_pct,
        fees={"processing": processing, "wire": wire},
        net_amount=net_amount(requested, advance_pct, processing, wire),
        valid_until=add_days(now, valid_days),
        mode=OfferMode.CUSTOM,
    )
