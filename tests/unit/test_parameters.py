"""Unit tests for lending parameter resolution"""

import uuid

import pytest

from factoring_engine.domain.models import ParameterOverride
from factoring_engine.domain.parameters import (
    DEFAULT_LENDING_SETTINGS,
    normalize_lending_settings,
    resolve_advance,
    resolve_company_segment,
    resolve_parameters,
    serialize_lending_settings,
)


@pytest.mark.parametrize(
    "company_type,segment",
    [
        ("Corporativo", "corporativo"),
        ("corporation", "corporativo"),
        ("Startup", "startup"),
        ("PYME", "pyme"),
        ("SME", "pyme"),
        ("cooperativa", "default"),
        (None, "default"),
        ("", "default"),
    ],
)
def test_resolve_company_segment(company_type, segment):
    assert resolve_company_segment(company_type) == segment


def test_normalize_none_returns_defaults():
    lending = normalize_lending_settings(None)

    assert lending.discount_rate == 24
    assert lending.credit_limits["corporativo"] == 600_000_000
    assert lending.terms["startup"] == 75
    assert lending.auto_approval.max_exposure_ratio == 1
    assert lending.auto_approval.max_tenor_buffer_days == 5
    assert lending.auto_approval.min_risk_level == "medium"


def test_normalize_does_not_mutate_defaults():
    lending = normalize_lending_settings({"creditLimits": {"pyme": 1}})
    assert lending.credit_limits["pyme"] == 1
    assert DEFAULT_LENDING_SETTINGS.credit_limits["pyme"] == 300_000_000


def test_normalize_merges_and_parses_strings():
    lending = normalize_lending_settings(
        {
            "discountRate": "18,5",
            "creditLimits": {"startup": "200 000 000", "agro": 80_000_000},
            "terms": {"pyme": "60"},
            "autoApproval": {"maxExposureRatio": "0,8", "maxTenorBufferDays": 3, "minRiskLevel": "low"},
        }
    )

    assert lending.discount_rate == 18.5
    assert lending.credit_limits["startup"] == 200_000_000
    assert lending.credit_limits["agro"] == 80_000_000
    assert lending.credit_limits["default"] == 250_000_000
    assert lending.terms["pyme"] == 60
    assert lending.auto_approval.max_exposure_ratio == 0.8
    assert lending.auto_approval.max_tenor_buffer_days == 3
    assert lending.auto_approval.min_risk_level == "low"


def test_normalize_ignores_invalid_auto_approval_values():
    lending = normalize_lending_settings(
        {"autoApproval": {"maxExposureRatio": 0, "maxTenorBufferDays": -1, "minRiskLevel": "extreme"}}
    )

    assert lending.auto_approval.max_exposure_ratio == 1
    assert lending.auto_approval.max_tenor_buffer_days == 5
    assert lending.auto_approval.min_risk_level == "medium"


def test_serialize_round_trips_through_normalize():
    lending = normalize_lending_settings({"discountRate": 20, "terms": {"startup": 45}})
    assert normalize_lending_settings(serialize_lending_settings(lending)) == lending


@pytest.mark.parametrize(
    "discount_rate,advance",
    [
        (24, 88),  # 100 - 12
        (0, 95),  # capped
        (150, 50),  # floored
        (25, 88),  # 87.5 rounds up
    ],
)
def test_resolve_advance(discount_rate, advance):
    assert resolve_advance(discount_rate) == advance


def test_resolve_parameters_global_default():
    params = resolve_parameters(normalize_lending_settings(None), None, None)

    assert params.source == "global_default"
    assert params.segment == "default"
    assert params.discount_rate == 24
    assert params.advance_pct == 88
    assert params.operation_days == 90
    assert params.credit_limit == 250_000_000
    assert params.exposure_ratio == 1
    assert params.tenor_buffer_days == 5


def test_resolve_parameters_segment_default():
    params = resolve_parameters(normalize_lending_settings(None), None, "Corporativo SAS")

    assert params.source == "segment_default"
    assert params.operation_days == 120
    assert params.credit_limit == 600_000_000


def test_override_fields_win_individually():
    override = ParameterOverride(company_id=uuid.uuid4(), discount_rate=30, operation_days=45.6)
    params = resolve_parameters(normalize_lending_settings(None), override, "startup")

    assert params.source == "company_override"
    assert params.discount_rate == 30
    assert params.advance_pct == 85  # derived from the overridden rate
    assert params.operation_days == 46
    assert params.credit_limit == 150_000_000


def test_override_discount_is_clamped():
    override = ParameterOverride(company_id=uuid.uuid4(), discount_rate=500, advance_pct=120)
    params = resolve_parameters(normalize_lending_settings(None), override, None)

    assert params.discount_rate == 200
    assert params.advance_pct == 100


def test_empty_override_is_not_an_override():
    override = ParameterOverride(company_id=uuid.uuid4())
    params = resolve_parameters(normalize_lending_settings(None), override, None)
    assert params.source == "global_default"


def test_non_positive_term_falls_back_to_ninety_days():
    lending = normalize_lending_settings({"terms": {"pyme": 0}})
    params = resolve_parameters(lending, None, "pyme")
    assert params.operation_days == 90
