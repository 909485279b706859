"""Integration tests for collection cases and next steps"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from factoring_engine.domain.exceptions import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from factoring_engine.domain.models import CaseUpdate, CollectionActionInput
from factoring_engine.services.collections import (
    get_next_steps,
    list_actions,
    open_case,
    record_action,
    update_case,
)
from factoring_engine.services.events import COLLECTION_PROMISE_UPDATED


@pytest.fixture
def funded_request(factory):
    return factory.request(factory.company(), status="funded")


def test_next_steps_follow_status(db, factory):
    request = factory.request(factory.company(), status="signed")
    assert get_next_steps(db, request.id).label == "Esperar desembolso"


def test_next_steps_unknown_request(db, factory):
    import uuid

    with pytest.raises(NotFoundError):
        get_next_steps(db, uuid.uuid4())


def test_open_case_on_funded_request(db, funded_request, staff, now):
    case = open_case(db, funded_request.id, staff, priority="high", now=now)

    assert case.status == "open"
    assert case.priority == "high"
    assert case.assigned_to == "staff-1"
    assert get_next_steps(db, funded_request.id).label == "Seguimiento de cobranza en curso"


def test_only_one_open_case_per_request(db, funded_request, staff, now):
    open_case(db, funded_request.id, staff, now=now)
    with pytest.raises(ConflictError):
        open_case(db, funded_request.id, staff, now=now)


def test_case_requires_funded_request(db, factory, staff, now):
    request = factory.request(factory.company(), status="signed")
    with pytest.raises(InvalidTransitionError):
        open_case(db, request.id, staff, now=now)


def test_promise_update_changes_hint_and_notifies(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)

    updated = update_case(
        db,
        case.id,
        CaseUpdate(values={"status": "promised", "promise_date": "2025-04-15", "promise_amount": "1500000,50"}),
        staff,
        outbox,
        now=now,
    )

    assert updated.status == "promised"
    assert updated.promise_date == date(2025, 4, 15)
    assert updated.promise_amount == Decimal("1500000.50")
    step = get_next_steps(db, funded_request.id)
    assert step.hint == "Compromiso de pago para 15/04/2025"

    events = outbox.drain()
    assert [event.kind for event in events] == [COLLECTION_PROMISE_UPDATED]
    assert events[0].payload["promise_date"] == "2025-04-15"
    assert events[0].payload["promise_amount"] == 1500000.5


def test_non_promise_update_does_not_notify(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)
    next_review = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)

    update_case(db, case.id, CaseUpdate(values={"next_action_at": next_review, "notes": "Llamar"}), staff, outbox)

    assert outbox.drain() == []
    assert get_next_steps(db, funded_request.id).hint == "Revisión programada 10/03/2025 15:00"


def test_empty_update_is_rejected(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)

    with pytest.raises(ValidationError) as exc_info:
        update_case(db, case.id, CaseUpdate(values={"request_id": "x"}), staff, outbox)
    assert exc_info.value.message == "Sin cambios"


def test_invalid_case_status(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)
    with pytest.raises(ValidationError):
        update_case(db, case.id, CaseUpdate(values={"status": "lost"}), staff, outbox)


def test_closing_case_stamps_closed_at_and_allows_new_case(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)

    closed = update_case(db, case.id, CaseUpdate(values={"status": "closed"}), staff, outbox, now=now)

    assert closed.closed_at is not None
    assert get_next_steps(db, funded_request.id).label == "Solicitud desembolsada"
    second = open_case(db, funded_request.id, staff, now=now + timedelta(days=1))
    assert second.id != case.id


def test_record_and_list_actions(db, funded_request, staff, now):
    case = open_case(db, funded_request.id, staff, now=now)

    record_action(db, case.id, CollectionActionInput(action_type="call", note="Sin respuesta"), staff, now=now)
    record_action(
        db,
        case.id,
        CollectionActionInput(action_type="email", metadata={"template": "recordatorio"}),
        staff,
        now=now + timedelta(hours=1),
    )

    actions = list_actions(db, case.id)
    assert [action.action_type for action in actions] == ["call", "email"]
    assert actions[0].created_by == "staff-1"
    assert actions[1].action_metadata == {"template": "recordatorio"}


def test_action_type_required(db, funded_request, staff, now):
    case = open_case(db, funded_request.id, staff, now=now)
    with pytest.raises(ValidationError) as exc_info:
        record_action(db, case.id, CollectionActionInput(action_type="  "), staff)
    assert exc_info.value.message == "Tipo de acción requerido"


def test_closed_case_rejects_actions(db, funded_request, staff, outbox, now):
    case = open_case(db, funded_request.id, staff, now=now)
    update_case(db, case.id, CaseUpdate(values={"status": "closed"}), staff, outbox, now=now)

    with pytest.raises(InvalidTransitionError):
        record_action(db, case.id, CollectionActionInput(action_type="call"), staff)
