"""Integration tests for the settings store and company overrides"""

import uuid

import pytest

from factoring_engine.domain.exceptions import NotFoundError, ValidationError
from factoring_engine.services.parameters import (
    delete_company_parameters,
    get_lending_settings,
    resolve_company_parameters,
    update_lending_settings,
    upsert_company_parameters,
)


def test_settings_default_when_nothing_stored(db):
    lending = get_lending_settings(db)
    assert lending.discount_rate == 24
    assert lending.updated_by is None


def test_update_settings_persists_and_stamps_actor(db, staff):
    update_lending_settings(db, {"discountRate": "20", "terms": {"corporativo": 150}}, staff)

    lending = get_lending_settings(db)
    assert lending.discount_rate == 20
    assert lending.terms["corporativo"] == 150
    assert lending.terms["startup"] == 75
    assert lending.updated_by == "staff-1"
    assert lending.updated_at is not None


def test_upsert_override_then_reset(db, factory, staff):
    company = factory.company(type="pyme")

    upsert_company_parameters(db, company.id, advance_pct=80, actor=staff)
    resolved = resolve_company_parameters(db, company.id)
    assert resolved.advance_pct == 80
    assert resolved.source == "company_override"

    assert delete_company_parameters(db, company.id) is True
    resolved = resolve_company_parameters(db, company.id)
    assert resolved.advance_pct == 88
    assert resolved.source == "segment_default"
    assert delete_company_parameters(db, company.id) is False


def test_upsert_replaces_all_fields(db, factory, staff):
    company = factory.company()
    upsert_company_parameters(db, company.id, discount_rate=30, operation_days=60, actor=staff)
    upsert_company_parameters(db, company.id, operation_days=45, actor=staff)

    resolved = resolve_company_parameters(db, company.id)
    assert resolved.discount_rate == 24
    assert resolved.operation_days == 45


@pytest.mark.parametrize(
    "field,value",
    [
        ("discount_rate", -1),
        ("discount_rate", 250),
        ("advance_pct", 101),
        ("operation_days", 0),
        ("advance_pct", "muchos"),
    ],
)
def test_upsert_rejects_out_of_range(db, factory, staff, field, value):
    company = factory.company()
    with pytest.raises(ValidationError):
        upsert_company_parameters(db, company.id, actor=staff, **{field: value})


def test_upsert_unknown_company(db, staff):
    with pytest.raises(NotFoundError):
        upsert_company_parameters(db, uuid.uuid4(), advance_pct=80, actor=staff)
