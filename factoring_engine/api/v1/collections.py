"""Collections endpoints - staff-only case management"""

import uuid

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from sqlalchemy.orm import Session

from factoring_engine.api.dependencies import get_notifier, get_request_id, get_staff_actor, schedule_delivery
from factoring_engine.api.errors import domain_http_error, internal_error
from factoring_engine.api.v1.schemas import (
    ActionItem,
    ActionListResponse,
    ActionRequest,
    CaseResponse,
    CaseUpdateRequest,
    NextStepResponse,
    OpenCaseRequest,
)
from factoring_engine.domain.exceptions import DomainException, ValidationError
from factoring_engine.domain.models import Actor, CaseUpdate, CollectionActionInput
from factoring_engine.infrastructure.clients.notifications import NotificationClient
from factoring_engine.infrastructure.database.models import CollectionActionRow, CollectionCaseRow
from factoring_engine.infrastructure.database.session import get_db
from factoring_engine.services import collections
from factoring_engine.services.events import EventOutbox
from factoring_engine.utils.date_utils import ensure_utc

router = APIRouter()


def case_response(case: CollectionCaseRow, next_steps=None) -> CaseResponse:
    return CaseResponse(
        case_id=str(case.id),
        request_id=str(case.request_id),
        company_id=str(case.company_id),
        status=case.status,
        priority=case.priority,
        assigned_to=case.assigned_to,
        notes=case.notes,
        opened_at=ensure_utc(case.opened_at),
        closed_at=ensure_utc(case.closed_at) if case.closed_at else None,
        next_action_at=ensure_utc(case.next_action_at) if case.next_action_at else None,
        promise_amount=float(case.promise_amount) if case.promise_amount is not None else None,
        promise_date=case.promise_date,
        next_steps=NextStepResponse(label=next_steps.label, hint=next_steps.hint) if next_steps else None,
    )


def action_item(action: CollectionActionRow) -> ActionItem:
    return ActionItem(
        action_id=str(action.id),
        action_type=action.action_type,
        note=action.note,
        due_at=ensure_utc(action.due_at) if action.due_at else None,
        completed_at=ensure_utc(action.completed_at) if action.completed_at else None,
        created_by=action.created_by,
        metadata=action.action_metadata,
        created_at=ensure_utc(action.created_at),
    )


@router.post("/collections", response_model=CaseResponse, status_code=201)
def post_case(
    body: OpenCaseRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    trace_id = get_request_id(request)
    try:
        request_id = uuid.UUID(body.request_id)
    except ValueError:
        raise domain_http_error(ValidationError("Solicitud inválida"), trace_id)

    try:
        case = collections.open_case(
            db,
            request_id,
            actor,
            priority=body.priority,
            assigned_to=body.assigned_to,
            notes=body.notes,
        )
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)
    return case_response(case)


@router.get("/collections/{case_id}", response_model=CaseResponse)
def get_case(
    case_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    """Case summary with the next step the client currently sees"""
    try:
        case = collections.get_case(db, case_id)
        next_steps = collections.case_next_steps(db, case)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))
    return case_response(case, next_steps)


@router.patch("/collections/{case_id}", response_model=CaseResponse)
def patch_case(
    case_id: uuid.UUID,
    body: CaseUpdateRequest,
    background_tasks: BackgroundTasks,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
    notifier: NotificationClient = Depends(get_notifier),
):
    """Partial update; an empty body is rejected with "Sin cambios" """
    trace_id = get_request_id(request)
    outbox = EventOutbox()
    try:
        case = collections.update_case(
            db, case_id, CaseUpdate(values=body.model_dump(exclude_unset=True)), actor, outbox
        )
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)

    schedule_delivery(background_tasks, notifier, outbox)
    return case_response(case)


@router.post("/collections/{case_id}/actions", response_model=ActionItem, status_code=201)
def post_action(
    case_id: uuid.UUID,
    body: ActionRequest,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    trace_id = get_request_id(request)
    try:
        action = collections.record_action(
            db,
            case_id,
            CollectionActionInput(
                action_type=body.action_type,
                note=body.note,
                due_at=body.due_at,
                completed_at=body.completed_at,
                metadata=body.metadata,
            ),
            actor,
        )
    except DomainException as e:
        raise domain_http_error(e, trace_id)
    except Exception as e:
        raise internal_error(e, trace_id)
    return action_item(action)


@router.get("/collections/{case_id}/actions", response_model=ActionListResponse)
def get_actions(
    case_id: uuid.UUID,
    request: Request,
    db: Session = Depends(get_db),
    actor: Actor = Depends(get_staff_actor),
):
    try:
        actions = collections.list_actions(db, case_id)
    except DomainException as e:
        raise domain_http_error(e, get_request_id(request))
    return ActionListResponse(case_id=str(case_id), actions=[action_item(action) for action in actions])
