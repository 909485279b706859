"""Disbursement account resolution"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional

from factoring_engine.domain.exceptions import (
    InvalidBankAccountError,
    NoBankAccountError,
    NotReadyForDisbursementError,
)
from factoring_engine.domain.lifecycle import parse_status
from factoring_engine.domain.models import BankAccount, PaymentStatus, RequestStatus
from factoring_engine.utils.date_utils import ensure_utc

DISBURSABLE_STATUSES = frozenset({RequestStatus.ACCEPTED, RequestStatus.SIGNED})

# Payments not yet picked up by the transfer; settled ones are never touched again
REFRESHABLE_PAYMENT_STATUSES = frozenset({PaymentStatus.PENDING.value, PaymentStatus.FAILED.value})

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def ensure_disbursable(status: str | RequestStatus, has_outbound_payment: bool = False) -> bool:
    """
    Returns True when the call replays a disbursement already recorded
    (request funded and its outbound payment present).
    """
    current = parse_status(status)
    if current == RequestStatus.FUNDED and has_outbound_payment:
        return True
    if current not in DISBURSABLE_STATUSES:
        raise NotReadyForDisbursementError()
    return False


def can_refresh_payment(status: Optional[str]) -> bool:
    return (status or PaymentStatus.PENDING.value) in REFRESHABLE_PAYMENT_STATUSES


def resolve_disbursement_account(
    accounts: List[BankAccount],
    requested_id: Optional[uuid.UUID] = None,
    previous_id: Optional[uuid.UUID] = None,
) -> uuid.UUID:
    """
    Pick the destination account for a disbursement.

    Resolution order:
    1. Caller-supplied account (must belong to the company)
    2. Account recorded on a previous disbursement, if still registered
    3. Default-flagged account
    4. Oldest registered account

    Raises:
        NoBankAccountError: company has no bank accounts
        InvalidBankAccountError: supplied account belongs to another company
    """
    if not accounts:
        raise NoBankAccountError()

    owned = {account.id for account in accounts}

    if requested_id is not None:
        if requested_id not in owned:
            raise InvalidBankAccountError()
        return requested_id

    if previous_id is not None and previous_id in owned:
        return previous_id

    for account in accounts:
        if account.is_default:
            return account.id

    oldest = min(accounts, key=lambda account: ensure_utc(account.created_at) if account.created_at else _EPOCH)
    return oldest.id
