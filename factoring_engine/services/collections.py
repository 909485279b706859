"""Collections tracking - cases, promises and the action log for funded requests"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from factoring_engine.domain.collections import compute_next_steps
from factoring_engine.domain.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from factoring_engine.domain.models import (
    Actor,
    CaseStatus,
    CaseUpdate,
    CollectionActionInput,
    CollectionCaseSnapshot,
    NextStep,
    RequestStatus,
)
from factoring_engine.infrastructure.database.models import CollectionActionRow, CollectionCaseRow
from factoring_engine.infrastructure.database.repositories import CollectionRepository
from factoring_engine.infrastructure.database.session import unit_of_work
from factoring_engine.services.events import COLLECTION_PROMISE_UPDATED, EventOutbox
from factoring_engine.services.lifecycle import get_request_or_404
from factoring_engine.utils.date_utils import ensure_utc, parse_due_date, utc_now
from factoring_engine.utils.numbers import to_decimal

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = (
    "status",
    "priority",
    "assigned_to",
    "notes",
    "next_action_at",
    "promise_amount",
    "promise_date",
)
PROMISE_FIELDS = ("promise_amount", "promise_date")


def _snapshot(case: Optional[CollectionCaseRow]) -> Optional[CollectionCaseSnapshot]:
    if case is None:
        return None
    return CollectionCaseSnapshot(
        status=case.status,
        next_action_at=case.next_action_at,
        promise_amount=case.promise_amount,
        promise_date=case.promise_date,
    )


def _get_case_or_404(db: Session, case_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> CollectionCaseRow:
    case = CollectionRepository(db).get_case(case_id)
    if case is None or (company_id is not None and case.company_id != company_id):
        raise NotFoundError("Caso de cobranza no encontrado")
    return case


def get_next_steps(db: Session, request_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> NextStep:
    """Borrower-facing next step for a request"""
    request = get_request_or_404(db, request_id, company_id)
    case = CollectionRepository(db).get_open_case(request.id)
    return compute_next_steps(request.status, _snapshot(case))


def get_case(db: Session, case_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> CollectionCaseRow:
    return _get_case_or_404(db, case_id, company_id)


def case_next_steps(db: Session, case: CollectionCaseRow) -> NextStep:
    request = get_request_or_404(db, case.request_id)
    return compute_next_steps(request.status, _snapshot(case))


def open_case(
    db: Session,
    request_id: uuid.UUID,
    actor: Actor,
    *,
    priority: Optional[str] = None,
    assigned_to: Optional[str] = None,
    notes: Optional[str] = None,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> CollectionCaseRow:
    """
    Open a collection case on a funded request.

    Raises:
        NotFoundError: request missing
        InvalidTransitionError: request not funded
        ConflictError: the request already has a non-closed case
    """
    now = now or utc_now()
    with unit_of_work(db):
        request = get_request_or_404(db, request_id, company_id)
        if request.status != RequestStatus.FUNDED.value:
            raise InvalidTransitionError("Solo solicitudes desembolsadas pueden pasar a cobranza")
        collections = CollectionRepository(db)
        if collections.get_open_case(request.id) is not None:
            raise ConflictError("La solicitud ya tiene un caso de cobranza abierto")
        case = collections.create_case(
            request, now, priority=priority, assigned_to=assigned_to or actor.user_id, notes=notes
        )
    logger.info(
        "Collection case opened",
        extra={"request_id": str(request_id), "case_id": str(case.id), "actor_id": actor.user_id},
    )
    return case


def _clean_update(values: Dict[str, Any]) -> Dict[str, Any]:
    cleaned: Dict[str, Any] = {}
    for name, value in values.items():
        if name == "status":
            try:
                cleaned[name] = CaseStatus(str(value).lower()).value
            except ValueError:
                raise ValidationError(f"Estado de cobranza inválido: {value}")
        elif name == "promise_amount":
            amount = to_decimal(value) if value is not None else None
            if value is not None and (amount is None or amount < 0):
                raise ValidationError("Monto de compromiso inválido")
            cleaned[name] = amount
        elif name == "promise_date":
            promised = parse_due_date(value)
            if value is not None and promised is None:
                raise ValidationError("Fecha de compromiso inválida")
            cleaned[name] = promised.date() if promised else None
        elif name == "next_action_at":
            scheduled = parse_due_date(value)
            if value is not None and scheduled is None:
                raise ValidationError("Fecha de próxima acción inválida")
            cleaned[name] = scheduled
        else:
            cleaned[name] = value
    return cleaned


def update_case(
    db: Session,
    case_id: uuid.UUID,
    update: CaseUpdate,
    actor: Actor,
    outbox: EventOutbox,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> CollectionCaseRow:
    """
    Apply a partial update to a case.

    Only fields present in the update are written. Closing stamps
    closed_at; reopening clears it. A change to the promised amount or
    date notifies staff.

    Raises:
        ValidationError: no recognised field, or a malformed value
        NotFoundError: case missing
        ConflictError: reopening while another case is open
    """
    values = {name: update.values[name] for name in update.fields_set if name in UPDATABLE_FIELDS}
    if not values:
        raise ValidationError("Sin cambios")
    values = _clean_update(values)
    now = now or utc_now()

    with outbox.stage() as pending, unit_of_work(db):
        case = _get_case_or_404(db, case_id, company_id)
        for name, value in values.items():
            setattr(case, name, value)
        if "status" in values:
            case.closed_at = now if values["status"] == CaseStatus.CLOSED.value else None
        case.updated_at = now
        db.flush()

        if any(name in values for name in PROMISE_FIELDS):
            pending.record(
                COLLECTION_PROMISE_UPDATED,
                case.company_id,
                {
                    "case_id": str(case.id),
                    "request_id": str(case.request_id),
                    "promise_date": case.promise_date.isoformat() if case.promise_date else None,
                    "promise_amount": float(case.promise_amount) if case.promise_amount is not None else None,
                    "actor_id": actor.user_id,
                },
            )
    return case


def record_action(
    db: Session,
    case_id: uuid.UUID,
    action: CollectionActionInput,
    actor: Actor,
    *,
    company_id: Optional[uuid.UUID] = None,
    now: Optional[datetime] = None,
) -> CollectionActionRow:
    """Append an entry to the case's action log"""
    action_type = (action.action_type or "").strip()
    if not action_type:
        raise ValidationError("Tipo de acción requerido")
    now = now or utc_now()

    with unit_of_work(db):
        case = _get_case_or_404(db, case_id, company_id)
        if case.status == CaseStatus.CLOSED.value:
            raise InvalidTransitionError("El caso de cobranza está cerrado")
        row = CollectionRepository(db).add_action(
            case,
            {
                "action_type": action_type,
                "note": action.note,
                "due_at": ensure_utc(action.due_at) if action.due_at else None,
                "completed_at": ensure_utc(action.completed_at) if action.completed_at else None,
                "created_by": actor.user_id,
                "created_by_name": actor.email,
                "action_metadata": action.metadata,
                "created_at": now,
            },
        )
    return row


def list_actions(db: Session, case_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> List[CollectionActionRow]:
    case = _get_case_or_404(db, case_id, company_id)
    return CollectionRepository(db).list_actions(case.id)
