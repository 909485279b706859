"""Funding request endpoints - lifecycle, auto-approval, offers, disbursement"""

import uuid
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from factoring_engine.api.dependencies import (
    get_company_actor,
    get_notifier,
    get_request_id,
    get_staff_actor,
    schedule_delivery,
)
from factoring_engine.api.errors import domain_http_error, internal_error
from factoring_engine.api.v1.offers import offer_response
from factoring_engine.api.v1.schemas import (
    CreateOfferRequest,
    DisbursementResponse,
    DisburseRequest,
    NextStepResponse,
    OfferResponse,
    RequestStatusResponse,
    StatusEventItem,
    StatusHistoryResponse,
    TransitionRequest,
)
from factoring_engine.domain.exceptions import DomainException
from factoring_engine.domain.models import Actor, CustomOfferInput, RequestStatus
from factoring_engine.infrastructure.clients.notifications import NotificationClient
from factoring_engine.infrastructure.database.models import FundingRequestRow
from factoring_engine.infrastructure.database.session import get_db
from factoring_engine.services.approval import evaluate_auto_approval
from factoring_engine.services.collections import get_next_steps
from factoring_engine.services.disbursement import disburse
from factoring_engine.services.events import EventOutbox
from factoring_engine.services.lifecycle import list_status_history, transition_request
from factoring_engine.services.offers import create_offer, get_active_offer
from factoring_engine.utils.date_utils import ensure_utc

router = APIRouter()

REQUEST_PATH = "/companies/{company_id}/requests/{request_id}"


def _optional_utc(value):
    return ensure_utc(value) if value is not None else None


def request_response(row: FundingRequestRow) -> RequestStatusResponse:
    return RequestStatusResponse(
        request_id=str(row.id),
        company_id=str(row.company_id),
        status=row.status,
        disbursement_account_id=str(row.disbursement_account_id) if row.disbursement_account_id else None,
        disbursed_at=_optional_utc(row.disbursed_at),
        archived_at=_optional_utc(row.archived_at),
    )


def _parse_account_id(value: Optional[str]) -> Optional[uuid.UUID]:
    if not value:
        return None
    try:
        return uuid.UUID(value)
    except ValueError:
        raise HTTPException(status_code=422, detail="Cuenta bancaria inválida")


@router.post(REQUEST_PATH + "/transition", response_model=RequestStatusResponse)
def post_transition(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    body: TransitionRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    """
    Move a request along the lifecycle graph.

    Returns 409 when the edge is not allowed or another writer changed the
    status first, 422 for an unknown status.
    """
    trace_id = get_request_id(request)
    outbox = EventOutbox()
    try:
        row = transition_request(db, request_id, body.target_status, actor, outbox, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return request_response(row)


@router.post(REQUEST_PATH + "/auto-approve", response_model=OfferResponse)
def post_auto_approve(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    """Approve without manual pricing when exposure and tenor are within limits"""
    trace_id = get_request_id(request)
    outbox = EventOutbox()
    try:
        offer = evaluate_auto_approval(db, request_id, actor, outbox, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return offer_response(offer)


@router.post(REQUEST_PATH + "/offers", response_model=OfferResponse, status_code=201)
def post_offer(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    body: CreateOfferRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    trace_id = get_request_id(request)
    custom = None
    if body.mode == "custom":
        fields = body.custom.model_dump() if body.custom else {}
        custom = CustomOfferInput(**fields)

    outbox = EventOutbox()
    try:
        offer = create_offer(db, request_id, actor, outbox, custom=custom, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return offer_response(offer)


@router.get(REQUEST_PATH + "/offers/current", response_model=OfferResponse)
def get_current_offer(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
):
    trace_id = get_request_id(request)
    try:
        offer = get_active_offer(db, request_id, company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    if offer is None:
        raise HTTPException(status_code=404, detail="Oferta no encontrada")
    return offer_response(offer)


@router.post(REQUEST_PATH + "/disburse", response_model=DisbursementResponse)
def post_disburse(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    body: Optional[DisburseRequest] = None,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    """
    Request the transfer of the proceeds.

    Flow:
    1. Resolve the destination account (explicit, previous, default, oldest)
    2. Create or refresh the request's single outbound payment
    3. Move the request to funded
    4. Notify after commit
    """
    trace_id = get_request_id(request)
    account_id = _parse_account_id(body.bank_account_id if body else None)
    outbox = EventOutbox()
    try:
        result = disburse(db, request_id, actor, outbox, bank_account_id=account_id, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return DisbursementResponse(
        payment_id=str(result.payment_id),
        request_id=str(result.request_id),
        bank_account_id=str(result.bank_account_id),
        created=result.created,
        status=RequestStatus.FUNDED.value,
    )


@router.get(REQUEST_PATH + "/next-steps", response_model=NextStepResponse)
def get_request_next_steps(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
):
    try:
        step = get_next_steps(db, request_id, company_id)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))
    return NextStepResponse(label=step.label, hint=step.hint)


@router.get(REQUEST_PATH + "/history", response_model=StatusHistoryResponse)
def get_request_history(
    company_id: uuid.UUID,
    request_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
):
    """Status changes in the order they were committed"""
    try:
        events = list_status_history(db, request_id, company_id)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))

    return StatusHistoryResponse(
        request_id=str(request_id),
        events=[
            StatusEventItem(
                sequence=event.sequence,
                from_status=event.from_status,
                to_status=event.to_status,
                actor_id=event.actor_id,
                created_at=ensure_utc(event.created_at),
            )
            for event in events
        ],
    )
