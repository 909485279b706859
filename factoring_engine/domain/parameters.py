"""Lending parameter resolution: global defaults, segment defaults, company overrides"""

import copy
from typing import Any, Dict, Optional

from factoring_engine.domain.models import (
    AutoApprovalSettings,
    LendingSettings,
    ParameterOverride,
    ResolvedParameters,
)
from factoring_engine.utils.numbers import clamp, round_half_up, to_number

DEFAULT_SEGMENT = "default"
RISK_LEVELS = ("low", "medium", "high")

DEFAULT_DISCOUNT_RATE = 24.0
DEFAULT_OPERATION_DAYS = 90

DEFAULT_LENDING_SETTINGS = LendingSettings(
    discount_rate=DEFAULT_DISCOUNT_RATE,
    credit_limits={
        "default": 250_000_000,
        "startup": 150_000_000,
        "pyme": 300_000_000,
        "corporativo": 600_000_000,
    },
    terms={
        "default": 90,
        "startup": 75,
        "pyme": 90,
        "corporativo": 120,
    },
    auto_approval=AutoApprovalSettings(max_exposure_ratio=1.0, max_tenor_buffer_days=5.0, min_risk_level="medium"),
)


def resolve_company_segment(company_type: Optional[str]) -> str:
    """Map a free-text company type to a customer segment"""
    if not company_type:
        return DEFAULT_SEGMENT
    normalized = company_type.lower()
    if "corp" in normalized:
        return "corporativo"
    if "start" in normalized:
        return "startup"
    if "pyme" in normalized or "sme" in normalized:
        return "pyme"
    return DEFAULT_SEGMENT


def normalize_lending_settings(raw: Any) -> LendingSettings:
    """
    Merge a stored settings document over the defaults.

    Unknown keys are ignored, unparseable numbers keep the default, and
    segment maps are merged key by key so new segments can be added.
    """
    base = copy.deepcopy(DEFAULT_LENDING_SETTINGS)
    if not isinstance(raw, dict):
        return base

    discount = to_number(raw.get("discountRate"))
    if discount is not None:
        base.discount_rate = discount

    for key, target in (("creditLimits", base.credit_limits), ("terms", base.terms)):
        values = raw.get(key)
        if isinstance(values, dict):
            for segment, amount in values.items():
                numeric = to_number(amount)
                if numeric is not None:
                    target[segment] = numeric

    auto = raw.get("autoApproval")
    if isinstance(auto, dict):
        ratio = to_number(auto.get("maxExposureRatio"))
        if ratio is not None and ratio > 0:
            base.auto_approval.max_exposure_ratio = ratio

        buffer = to_number(auto.get("maxTenorBufferDays"))
        if buffer is not None and buffer >= 0:
            base.auto_approval.max_tenor_buffer_days = buffer

        level = auto.get("minRiskLevel")
        if level in RISK_LEVELS:
            base.auto_approval.min_risk_level = level

    return base


def serialize_lending_settings(lending: LendingSettings) -> Dict[str, Any]:
    """Inverse of normalize_lending_settings, in the stored JSON shape"""
    return {
        "discountRate": lending.discount_rate,
        "creditLimits": dict(lending.credit_limits),
        "terms": dict(lending.terms),
        "autoApproval": {
            "maxExposureRatio": lending.auto_approval.max_exposure_ratio,
            "maxTenorBufferDays": lending.auto_approval.max_tenor_buffer_days,
            "minRiskLevel": lending.auto_approval.min_risk_level,
        },
    }


def _bounded(value: Any, minimum: float, maximum: float) -> Optional[float]:
    numeric = to_number(value)
    if numeric is None:
        return None
    return clamp(numeric, minimum, maximum)


def resolve_term(lending: LendingSettings, company_type: Optional[str]) -> int:
    segment = resolve_company_segment(company_type)
    value = to_number(lending.terms.get(segment, lending.terms.get(DEFAULT_SEGMENT)))
    if value is None or value <= 0:
        return DEFAULT_OPERATION_DAYS
    return round_half_up(value)


def resolve_advance(discount_rate: float) -> float:
    """Default advance: 100 - rate/2, bounded to [50, 95]"""
    bounded = _bounded(discount_rate, 0, 200)
    if bounded is None:
        bounded = DEFAULT_DISCOUNT_RATE
    return clamp(round_half_up(100 - bounded / 2), 50, 95)


def resolve_credit_limit(lending: LendingSettings, segment: str) -> float:
    limit = lending.credit_limits.get(segment)
    if limit is None:
        limit = lending.credit_limits.get(DEFAULT_SEGMENT, 0)
    return limit


def resolve_parameters(
    lending: LendingSettings,
    override: Optional[ParameterOverride],
    company_type: Optional[str],
) -> ResolvedParameters:
    """
    Effective parameters for one company.

    Each override field wins independently; missing fields fall back to
    the segment default (term, credit limit) or the global default (rate).
    """
    segment = resolve_company_segment(company_type)

    discount = _bounded(override.discount_rate, 0, 200) if override else None
    advance = _bounded(override.advance_pct, 0, 100) if override else None
    operation_days = None
    if override is not None:
        days = to_number(override.operation_days)
        if days is not None and days > 0:
            operation_days = round_half_up(days)

    global_discount = lending.discount_rate if lending.discount_rate is not None else DEFAULT_DISCOUNT_RATE
    has_override = discount is not None or advance is not None or operation_days is not None
    if has_override:
        source = "company_override"
    elif company_type:
        source = "segment_default"
    else:
        source = "global_default"

    effective_discount = discount if discount is not None else global_discount
    return ResolvedParameters(
        discount_rate=effective_discount,
        advance_pct=advance if advance is not None else resolve_advance(effective_discount),
        operation_days=operation_days if operation_days is not None else resolve_term(lending, company_type),
        credit_limit=resolve_credit_limit(lending, segment),
        exposure_ratio=lending.auto_approval.max_exposure_ratio,
        tenor_buffer_days=lending.auto_approval.max_tenor_buffer_days,
        segment=segment,
        source=source,
    )
