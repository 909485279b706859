"""Funding request state machine - legal status transitions"""

from typing import Dict, FrozenSet, List

from factoring_engine.domain.exceptions import InvalidTransitionError, ValidationError
from factoring_engine.domain.models import RequestStatus

S = RequestStatus

TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    S.REVIEW: frozenset({S.OFFERED, S.ACCEPTED, S.CANCELLED, S.REJECTED, S.ARCHIVED}),
    S.OFFERED: frozenset({S.ACCEPTED, S.REVIEW, S.CANCELLED, S.REJECTED, S.ARCHIVED}),
    S.ACCEPTED: frozenset({S.SIGNED, S.FUNDED, S.ARCHIVED}),
    S.SIGNED: frozenset({S.FUNDED, S.ARCHIVED}),
    S.FUNDED: frozenset({S.ARCHIVED}),
    S.CANCELLED: frozenset({S.ARCHIVED}),
    S.REJECTED: frozenset({S.ARCHIVED}),
    S.ARCHIVED: frozenset(),
}

# Position on the happy path; side branches have no rank
HAPPY_PATH: List[RequestStatus] = [S.REVIEW, S.OFFERED, S.ACCEPTED, S.SIGNED, S.FUNDED]

STATUS_LABELS = {
    S.REVIEW: "en revisión",
    S.OFFERED: "ofertada",
    S.ACCEPTED: "aceptada",
    S.SIGNED: "firmada",
    S.FUNDED: "desembolsada",
    S.CANCELLED: "cancelada",
    S.REJECTED: "rechazada",
    S.ARCHIVED: "archivada",
}


def parse_status(value: str | RequestStatus) -> RequestStatus:
    """Coerce a raw status string (case-insensitive) into a RequestStatus"""
    if isinstance(value, RequestStatus):
        return value
    try:
        return RequestStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Estado desconocido: {value}")


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_transition(current: str | RequestStatus, target: str | RequestStatus) -> RequestStatus:
    """
    Validate a transition and return the parsed target status.

    Raises:
        ValidationError: unknown status string
        InvalidTransitionError: target not reachable from current
    """
    current_status = parse_status(current)
    target_status = parse_status(target)
    if not can_transition(current_status, target_status):
        raise InvalidTransitionError(
            f"No es posible pasar la solicitud de {STATUS_LABELS[current_status]} "
            f"a {STATUS_LABELS[target_status]}"
        )
    return target_status