"""Lending settings endpoints - global parameters and per-company overrides"""

import uuid
from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from sqlalchemy.orm import Session

from factoring_engine.api.dependencies import get_request_id, get_staff_actor
from factoring_engine.api.errors import domain_http_error, internal_error
from factoring_engine.api.v1.schemas import (
    CompanyParametersRequest,
    LendingSettingsResponse,
    ResolvedParametersResponse,
)
from factoring_engine.domain.exceptions import DomainException
from factoring_engine.domain.models import Actor, LendingSettings, ResolvedParameters
from factoring_engine.domain.parameters import serialize_lending_settings
from factoring_engine.infrastructure.database.session import get_db
from factoring_engine.services import parameters

router = APIRouter()


def settings_response(lending: LendingSettings) -> LendingSettingsResponse:
    return LendingSettingsResponse(
        settings=serialize_lending_settings(lending),
        updated_at=lending.updated_at,
        updated_by=lending.updated_by,
    )


def resolved_response(company_id: uuid.UUID, resolved: ResolvedParameters) -> ResolvedParametersResponse:
    return ResolvedParametersResponse(
        company_id=str(company_id),
        discount_rate=resolved.discount_rate,
        advance_pct=resolved.advance_pct,
        operation_days=resolved.operation_days,
        credit_limit=resolved.credit_limit,
        exposure_ratio=resolved.exposure_ratio,
        tenor_buffer_days=resolved.tenor_buffer_days,
        segment=resolved.segment,
        source=resolved.source,
    )


@router.get("/settings", response_model=LendingSettingsResponse)
def get_settings(db: Session = Depends(get_db), actor: Actor = Depends(get_staff_actor)):
    return settings_response(parameters.get_lending_settings(db))


@router.put("/settings", response_model=LendingSettingsResponse)
def put_settings(
    request: Request,
    body: Dict[str, Any] = Body(...),
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    """
    Replace the lending settings document.

    Accepts the stored camelCase shape (discountRate, creditLimits, terms,
    autoApproval); invalid values fall back to the defaults.
    """
    trace_id = get_request_id(request)
    try:
        lending = parameters.update_lending_settings(db, body, actor)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)
    return settings_response(lending)


@router.get("/settings/companies/{company_id}", response_model=ResolvedParametersResponse)
def get_company_parameters(
    company_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    try:
        resolved = parameters.resolve_company_parameters(db, company_id)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))
    return resolved_response(company_id, resolved)


@router.put("/settings/companies/{company_id}", response_model=ResolvedParametersResponse)
def put_company_parameters(
    company_id: uuid.UUID,
    body: CompanyParametersRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    trace_id = get_request_id(request)
    try:
        parameters.upsert_company_parameters(
            db,
            company_id,
            discount_rate=body.discount_rate,
            advance_pct=body.advance_pct,
            operation_days=body.operation_days,
            actor=actor,
        )
        resolved = parameters.resolve_company_parameters(db, company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)
    return resolved_response(company_id, resolved)


@router.delete("/settings/companies/{company_id}", response_model=ResolvedParametersResponse)
def delete_company_parameters(
    company_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    """Drop the overrides; the response shows the defaults now in effect"""
    trace_id = get_request_id(request)
    try:
        parameters.delete_company_parameters(db, company_id)
        resolved = parameters.resolve_company_parameters(db, company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)
    return resolved_response(company_id, resolved)
