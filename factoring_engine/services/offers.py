"""Offer workflow - staff creates, client accepts or rejects"""

import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from factoring_engine.config import Settings, settings as default_settings
from factoring_engine.domain.exceptions import InvalidTransitionError, NotFoundError, OfferExpiredError
from factoring_engine.domain.models import Actor, CustomOfferInput, OfferStatus, RequestStatus
from factoring_engine.domain.pricing import compute_custom_offer, compute_offer
from factoring_engine.infrastructure.database.models import OfferRow
from factoring_engine.infrastructure.database.repositories import OfferRepository
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.infrastructure.observability.metrics import record_offer
from factoring_engine.services.events import OFFER_ACCEPTED, OFFER_CREATED, OFFER_REJECTED, EventOutbox
from factoring_engine.services.lifecycle import apply_transition, get_request_or_404, report_transitions
from factoring_engine.utils.date_utils import ensure_utc, utc_now

OFFERABLE_STATUSES = (RequestStatus.REVIEW.value, RequestStatus.OFFERED.value)


def _get_offer_or_404(db: Session, offer_id: uuid.UUID, company_id: Optional[uuid.UUID]) -> OfferRow:
    offer = OfferRepository(db).get(offer_id)
    if offer is None or (company_id is not None and offer.company_id != company_id):
        raise NotFoundError("Oferta no encontrada")
    return offer


def _ensure_open(offer: OfferRow, message: str) -> None:
    if offer.status != OfferStatus.OFFERED.value:
        raise InvalidTransitionError(message)


def create_offer(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    custom: Optional[CustomOfferInput] = None,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
    config: Settings = default_settings,
) -> OfferRow:
    """
    Price and publish an offer for a request in review (or re-offer).

    A previously open offer is cancelled, not overwritten, so the history
    of proposed terms is kept. Moves the request to offered when it is
    still in review.
    """
    now = now or utc_now()
    with outbox.stage() as pending, unit_of_work(db):
        request = get_request_or_404(db, request_id, company_id)
        if request.status not in OFFERABLE_STATUSES:
            raise InvalidTransitionError("Solo solicitudes en revisión u ofertadas pueden recibir una oferta")

        if custom is not None:
            terms = compute_custom_offer(request.requested_amount, custom, now=now, config=config)
        else:
            terms = compute_offer(request.requested_amount, now=now, config=config)

        offers = OfferRepository(db)
        for previous in offers.list_active(request.id):
            previous.status = OfferStatus.CANCELLED.value
        offer = offers.create(request, terms, OfferStatus.OFFERED, created_by=actor.user_id, created_at=now)

        if request.status == RequestStatus.REVIEW.value:
            apply_transition(db, request, RequestStatus.OFFERED, actor, pending, now=now)

        pending.record(
            OFFER_CREATED,
            request.company_id,
            {"offer_id": str(offer.id), "request_id": str(request.id), "net_amount": terms.net_amount},
        )
    report_transitions(pending)
    record_offer(terms.mode.value, terms.net_amount)
    return offer


def accept_offer(
    db: Session,
    offer_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> OfferRow:
    """
    Client accepts an open, unexpired offer; the request moves to accepted.

    Raises:
        NotFoundError: unknown offer
        InvalidTransitionError: offer already accepted/cancelled, or the
            request is no longer offered
        OfferExpiredError: past valid_until
    """
    now = now or utc_now()
    with outbox.stage() as pending, unit_of_work(db):
        offer = _get_offer_or_404(db, offer_id, company_id)
        _ensure_open(offer, "La oferta no está disponible para aceptación")
        if ensure_utc(offer.valid_until) < now:
            raise OfferExpiredError()

        request = get_request_or_404(db, offer.request_id, offer.company_id)
        if request.status != RequestStatus.OFFERED.value:
            raise InvalidTransitionError("La solicitud ya no está en etapa de oferta")
        apply_transition(db, request, RequestStatus.ACCEPTED, actor, pending, now=now)

        offer.status = OfferStatus.ACCEPTED.value
        offer.accepted_by = actor.user_id
        offer.accepted_at = now
        pending.record(OFFER_ACCEPTED, offer.company_id, {"offer_id": str(offer.id), "request_id": str(request.id)})
    report_transitions(pending)
    return offer


def reject_offer(
    db: Session,
    offer_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> OfferRow:
    """Client declines; the offer is cancelled and the request reopens for review"""
    now = now or utc_now()
    with outbox.stage() as pending, unit_of_work(db):
        offer = _get_offer_or_404(db, offer_id, company_id)
        _ensure_open(offer, "Esta oferta no está disponible para rechazo")

        request = get_request_or_404(db, offer.request_id, offer.company_id)
        apply_transition(db, request, RequestStatus.REVIEW, actor, pending, now=now)

        offer.status = OfferStatus.CANCELLED.value
        pending.record(OFFER_REJECTED, offer.company_id, {"offer_id": str(offer.id), "request_id": str(request.id)})
    report_transitions(pending)
    return offer


def get_active_offer(
    db: Session,
    request_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
) -> Optional[OfferRow]:
    """The open offer if any, else the most recent one"""
    request = get_request_or_404(db, request_id, company_id)
    offers = OfferRepository(db)
    active = offers.list_active(request.id)
    if active:
        return active[0]
    return offers.get_latest(request.id)
