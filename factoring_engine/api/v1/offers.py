"""Offer endpoints - pricing preview and client accept/reject"""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from factoring_engine.api.dependencies import (
    get_actor,
    get_company_actor,
    get_notifier,
    get_request_id,
    schedule_delivery,
)
from factoring_engine.api.errors import domain_http_error, internal_error
from factoring_engine.api.v1.schemas import OfferPreviewRequest, OfferResponse, OfferTermsResponse
from factoring_engine.domain.exceptions import DomainException
from factoring_engine.domain.models import Actor, CustomOfferInput
from factoring_engine.domain.pricing import compute_custom_offer, compute_offer
from factoring_engine.infrastructure.clients.notifications import NotificationClient
from factoring_engine.infrastructure.database.models import OfferRow
from factoring_engine.infrastructure.database.session import get_db
from factoring_engine.services.events import EventOutbox
from factoring_engine.services.offers import accept_offer, reject_offer
from factoring_engine.utils.date_utils import ensure_utc

router = APIRouter()


def offer_response(offer: OfferRow) -> OfferResponse:
    return OfferResponse(
        offer_id=str(offer.id),
        request_id=str(offer.request_id),
        status=offer.status,
        mode=offer.mode,
        annual_rate=offer.annual_rate,
        advance_pct=offer.advance_pct,
        fees=offer.fees or {},
        net_amount=float(offer.net_amount),
        valid_until=ensure_utc(offer.valid_until),
        accepted_by=offer.accepted_by,
        created_at=ensure_utc(offer.created_at),
    )


@router.post("/offers/preview", response_model=OfferTermsResponse)
def preview_offer(body: OfferPreviewRequest, request: Request, actor: Actor = Depends(get_actor)):
    """
    Price an offer without storing it.

    Standard mode ignores the custom fields; custom mode clamps each one
    to its allowed range.
    """
    try:
        if body.mode == "custom":
            terms = compute_custom_offer(
                body.requested_amount,
                CustomOfferInput(
                    annual_rate_pct=body.annual_rate_pct,
                    advance_pct=body.advance_pct,
                    processing_fee=body.processing_fee,
                    wire_fee=body.wire_fee,
                    valid_for_days=body.valid_for_days,
                ),
            )
        else:
            terms = compute_offer(body.requested_amount)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))

    return OfferTermsResponse(
        annual_rate=terms.annual_rate,
        advance_pct=terms.advance_pct,
        fees=terms.fees,
        net_amount=terms.net_amount,
        valid_until=terms.valid_until,
        mode=terms.mode.value,
    )


@router.post("/companies/{company_id}/offers/{offer_id}/accept", response_model=OfferResponse)
def post_accept_offer(
    company_id: uuid.UUID,
    offer_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    request_id = get_request_id(request)
    outbox = EventOutbox()
    try:
        offer = accept_offer(db, offer_id, actor, outbox, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, request_id)
    except Exception as e:
        raise internal_error(e, request_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return offer_response(offer)


@router.post("/companies/{company_id}/offers/{offer_id}/reject", response_model=OfferResponse)
def post_reject_offer(
    company_id: uuid.UUID,
    offer_id: uuid.UUID,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_company_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    """Decline the offer; the request goes back to review"""
    request_id = get_request_id(request)
    outbox = EventOutbox()
    try:
        offer = reject_offer(db, offer_id, actor, outbox, company_id=company_id)
    except DomainException as e:
        raise domain_http_error(e, request_id)
    except Exception as e:
        raise internal_error(e, request_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return offer_response(offer)
