"""Funding request lifecycle - the only code path that writes request status"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from factoring_engine.domain.exceptions import ConflictError, NotFoundError
from factoring_engine.domain.lifecycle import ensure_transition, parse_status
from factoring_engine.domain.models import Actor, OfferStatus, RequestStatus
from factoring_engine.infrastructure.database.models import FundingRequestRow, RequestStatusEventRow
from factoring_engine.infrastructure.database.repositories import (
    OfferRepository,
    RequestRepository,
    StatusEventRepository,
)
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.infrastructure.observability.logging import log_transition
from factoring_engine.infrastructure.observability.metrics import record_transition
from factoring_engine.services.events import STATUS_CHANGED, EventOutbox
from factoring_engine.utils.date_utils import utc_now

# An open offer cannot outlive these moves
OFFER_WITHDRAWING_STATUSES = (RequestStatus.CANCELLED, RequestStatus.REVIEW)


def get_request_or_404(
    db: Session,
    request_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
) -> FundingRequestRow:
    request = RequestRepository(db).get(request_id, company_id)
    if request is None:
        raise NotFoundError("Solicitud no encontrada")
    return request


def apply_transition(
    db: Session,
    request: FundingRequestRow,
    target: str | RequestStatus,
    actor: Actor,
    outbox: EventOutbox,
    *,
    now: datetime,
    changes: Optional[Dict[str, Any]] = None,
) -> RequestStatusEventRow:
    """
    Move a request to `target` inside the caller's transaction.

    The update is conditional on the status read by this call; losing a
    race to another writer raises ConflictError instead of overwriting.
    Appends the next entry of the request's status log and queues one
    status-changed event. Does not commit.
    """
    from_status = request.status
    target_status = ensure_transition(from_status, target)

    updated = RequestRepository(db).compare_and_set_status(
        request.id, from_status, target_status.value, {**(changes or {}), "updated_at": now}
    )
    if not updated:
        raise ConflictError()

    event = StatusEventRepository(db).append(
        request_id=request.id,
        company_id=request.company_id,
        from_status=from_status,
        to_status=target_status.value,
        actor_id=actor.user_id,
        created_at=now,
    )

    outbox.record(
        STATUS_CHANGED,
        request.company_id,
        {
            "entity_id": str(request.id),
            "from_status": from_status,
            "to_status": target_status.value,
            "actor_id": actor.user_id,
            "sequence": event.sequence,
        },
    )
    return event


def report_transitions(staged: EventOutbox) -> None:
    """Count and log the status changes of a committed unit of work"""
    for event in staged.events:
        if event.kind != STATUS_CHANGED:
            continue
        payload = event.payload
        record_transition(payload["from_status"], payload["to_status"])
        log_transition(
            payload["entity_id"],
            event.company_id,
            payload["from_status"],
            payload["to_status"],
            payload["actor_id"],
            payload["sequence"],
        )


def transition_request(
    db: Session,
    request_id: uuid.UUID,
    target_status: str | RequestStatus,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> FundingRequestRow:
    """
    Generic transition entry point.

    Archiving stamps archived_at/archived_by; cancelling or sending the
    request back to review withdraws any open offer.

    Raises:
        ValidationError: unknown status string
        NotFoundError: request missing or owned by another company
        InvalidTransitionError: edge not in the lifecycle graph
        ConflictError: concurrent status change
    """
    target = parse_status(target_status)
    now = now or utc_now()
    changes = None
    if target == RequestStatus.ARCHIVED:
        changes = {"archived_at": now, "archived_by": actor.user_id}

    with outbox.stage() as pending, unit_of_work(db):
        request = get_request_or_404(db, request_id, company_id)
        apply_transition(db, request, target, actor, pending, now=now, changes=changes)
        if target in OFFER_WITHDRAWING_STATUSES:
            for offer in OfferRepository(db).list_active(request.id):
                offer.status = OfferStatus.CANCELLED.value
    report_transitions(pending)
    return request


def mark_signed(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> FundingRequestRow:
    """Contract provider callback: the client signed"""
    return transition_request(
        db, request_id, RequestStatus.SIGNED, actor, outbox, company_id=company_id, now=now
    )


def cancel_request(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> FundingRequestRow:
    """Staff denial; any open offer is withdrawn with the request"""
    return transition_request(
        db, request_id, RequestStatus.CANCELLED, actor, outbox, company_id=company_id, now=now
    )


def archive_request(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> FundingRequestRow:
    return transition_request(
        db, request_id, RequestStatus.ARCHIVED, actor, outbox, company_id=company_id, now=now
    )


def list_status_history(
    db: Session,
    request_id: uuid.UUID,
    company_id: Optional[uuid.UUID] = None,
) -> List[RequestStatusEventRow]:
    """Status changes in commit order"""
    request = get_request_or_404(db, request_id, company_id)
    return StatusEventRepository(db).list_for_request(request.id)
