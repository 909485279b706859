"""Disbursement orchestration - payment upsert plus the move to funded"""

import time
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from factoring_engine.config import settings
from factoring_engine.domain.disbursement import (
    can_refresh_payment,
    ensure_disbursable,
    resolve_disbursement_account,
)
from factoring_engine.domain.exceptions import PolicyViolationError
from factoring_engine.domain.models import Actor, DisbursementResult, RequestStatus
from factoring_engine.infrastructure.database.repositories import BankAccountRepository, PaymentRepository
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.infrastructure.observability.logging import log_disbursement
from factoring_engine.infrastructure.observability.metrics import disbursement_counter
from factoring_engine.services.events import DISBURSEMENT_REQUESTED, EventOutbox
from factoring_engine.services.lifecycle import apply_transition, get_request_or_404, report_transitions
from factoring_engine.utils.date_utils import utc_now


def disburse(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    outbox: EventOutbox,
    *,
    bank_account_id: Optional[uuid.UUID] = None,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> DisbursementResult:
    """
    Request the outbound transfer for an accepted or signed request.

    Flow:
    1. Check the request is ready, or is a replay of a recorded disbursement
       (a replay refreshes a payment still pending or failed, leaves a
       settled one alone, and queues no new event)
    2. Resolve the destination account
    3. Create or refresh the single outbound payment for the request
    4. Transition to funded, recording account and disbursement time
    5. Queue the disbursement event for the notification sender

    Raises:
        NotFoundError: request missing or owned by another company
        NotReadyForDisbursementError: request not accepted/signed
        NoBankAccountError: company has no registered account
        InvalidBankAccountError: supplied account belongs to another company
        ConflictError: a concurrent disbursement won the race
    """
    start_time = time.time()
    now = now or utc_now()

    try:
        with outbox.stage() as pending, unit_of_work(db):
            request = get_request_or_404(db, request_id, company_id)
            payments = PaymentRepository(db)
            payment = payments.get_outbound(request.company_id, request.id)
            replay = ensure_disbursable(request.status, has_outbound_payment=payment is not None)

            created = payment is None
            settled = payment is not None and not can_refresh_payment(payment.status)
            if settled:
                account_id = payment.bank_account_id
            else:
                account_id = resolve_disbursement_account(
                    BankAccountRepository(db).list_for_company(request.company_id),
                    requested_id=bank_account_id,
                    previous_id=request.disbursement_account_id,
                )
                currency = request.currency or settings.default_currency
                if created:
                    payment = payments.create_outbound(request, account_id, currency, now)
                else:
                    payment = payments.refresh_outbound(payment, request, account_id, currency, now)

            if replay:
                if not settled:
                    request.disbursement_account_id = account_id
                    request.updated_at = now
            else:
                apply_transition(
                    db,
                    request,
                    RequestStatus.FUNDED,
                    actor,
                    pending,
                    now=now,
                    changes={"disbursement_account_id": account_id, "disbursed_at": now},
                )
                pending.record(
                    DISBURSEMENT_REQUESTED,
                    request.company_id,
                    {
                        "payment_id": str(payment.id),
                        "request_id": str(request.id),
                        "bank_account_id": str(account_id),
                        "amount": float(payment.amount),
                        "currency": payment.currency,
                    },
                )
            result = DisbursementResult(
                payment_id=payment.id,
                request_id=request.id,
                bank_account_id=account_id,
                created=created,
            )
    except PolicyViolationError:
        disbursement_counter.labels(outcome="rejected").inc()
        raise

    report_transitions(pending)
    disbursement_counter.labels(outcome="created" if result.created else "updated").inc()
    duration_ms = (time.time() - start_time) * 1000
    log_disbursement(
        str(result.request_id), str(result.payment_id), str(result.bank_account_id), result.created, duration_ms
    )
    return result
