"""Auto-approval - risk-gated fast path from review straight to accepted"""

import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from factoring_engine.domain.approval import assess_auto_approval
from factoring_engine.domain.exceptions import (
    ExposureLimitExceededError,
    InvalidTransitionError,
    NotFoundError,
    TenorLimitExceededError,
)
from factoring_engine.domain.models import ACTIVE_STATUSES, Actor, OfferMode, OfferStatus, RequestStatus
from factoring_engine.domain.pricing import compute_offer
from factoring_engine.infrastructure.database.models import OfferRow
from factoring_engine.infrastructure.database.repositories import (
    InvoiceRepository,
    OfferRepository,
    RequestRepository,
)
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.infrastructure.observability.metrics import auto_approval_counter, record_offer
from factoring_engine.services.events import OFFER_CREATED, EventOutbox
from factoring_engine.services.lifecycle import apply_transition, get_request_or_404, report_transitions
from factoring_engine.services.parameters import ParameterResolver
from factoring_engine.utils.date_utils import utc_now

logger = logging.getLogger(__name__)

_REJECTION_OUTCOMES = {
    ExposureLimitExceededError: "exposure_exceeded",
    TenorLimitExceededError: "tenor_exceeded",
    InvalidTransitionError: "not_in_review",
}


def _rejection_outcome(error: Exception) -> str:
    for error_type, outcome in _REJECTION_OUTCOMES.items():
        if isinstance(error, error_type):
            return outcome
    return "rejected"


def evaluate_auto_approval(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    resolver: Optional[ParameterResolver] = None,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> OfferRow:
    """
    Approve a request in review without staff pricing.

    Flow:
    1. Resolve the company's effective parameters
    2. Check aggregate exposure and the longest invoice tenor
    3. Price an offer with the resolved discount rate and advance
    4. Store it already accepted and move the request to accepted

    Everything happens in one transaction; a failed check leaves no offer
    and no status change behind.

    Raises:
        NotFoundError: request or company missing
        InvalidTransitionError: request not in review
        ExposureLimitExceededError: company exposure above its limit
        TenorLimitExceededError: an invoice is due beyond the term plus buffer
    """
    now = now or utc_now()
    resolver = resolver or ParameterResolver.for_session(db)

    try:
        with outbox.stage() as pending, unit_of_work(db):
            request = get_request_or_404(db, request_id, company_id)
            requests = RequestRepository(db)
            company = requests.get_company(request.company_id)
            if company is None:
                raise NotFoundError("Empresa no encontrada")

            params = resolver.resolve(company.id, company.type)
            invoices = InvoiceRepository(db)
            due_dates = [invoice.due_date for invoice in invoices.get_many(invoices.linked_invoice_ids(request))]
            assessment = assess_auto_approval(
                request.status,
                requests.list_amounts_by_status(company.id, ACTIVE_STATUSES),
                due_dates,
                params,
                now,
            )

            terms = compute_offer(
                request.requested_amount,
                annual_rate=params.discount_rate / 100,
                advance_pct=params.advance_pct,
                now=now,
                mode=OfferMode.AUTO,
            )
            offer = OfferRepository(db).create(
                request,
                terms,
                OfferStatus.ACCEPTED,
                created_by=actor.user_id,
                created_at=now,
                accepted_by=actor.user_id,
            )
            apply_transition(db, request, RequestStatus.ACCEPTED, actor, pending, now=now)
            pending.record(
                OFFER_CREATED,
                request.company_id,
                {
                    "offer_id": str(offer.id),
                    "request_id": str(request.id),
                    "net_amount": terms.net_amount,
                    "mode": terms.mode.value,
                },
            )
    except tuple(_REJECTION_OUTCOMES) as e:
        auto_approval_counter.labels(outcome=_rejection_outcome(e)).inc()
        logger.info(
            f"Auto-approval declined: {e.message}",
            extra={"request_id": str(request_id), "step": "auto_approval"},
        )
        raise

    report_transitions(pending)
    auto_approval_counter.labels(outcome="approved").inc()
    record_offer(terms.mode.value, terms.net_amount)
    logger.info(
        "Auto-approval granted",
        extra={
            "request_id": str(request_id),
            "step": "auto_approval",
            "total_exposure": float(assessment.total_exposure),
            "max_tenor_days": assessment.max_tenor_days,
            "parameter_source": params.source,
        },
    )
    return offer
