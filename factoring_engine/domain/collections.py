"""Borrower-facing next step derived from request status and collection case"""

from typing import Optional

from factoring_engine.domain.models import CaseStatus, CollectionCaseSnapshot, NextStep
from factoring_engine.utils.date_utils import ensure_utc, parse_due_date

COLLECTION_LABEL = "Seguimiento de cobranza en curso"
COLLECTION_DEFAULT_HINT = "Nuestro equipo está acompañando el proceso de cobranza."

STATUS_NEXT_STEPS = {
    "funded": NextStep(
        label="Solicitud desembolsada",
        hint="Tu operación fue desembolsada. Mantente atento a los recordatorios de pago.",
    ),
    "signed": NextStep(
        label="Esperar desembolso",
        hint="Estamos programando el desembolso y te notificaremos al completarlo.",
    ),
    "accepted": NextStep(
        label="Firma de contrato",
        hint="Revisa y firma el contrato enviado para continuar con el desembolso.",
    ),
    "offered": NextStep(
        label="Aceptar oferta",
        hint="Revisa las condiciones para continuar con tu solicitud.",
    ),
    "cancelled": NextStep(
        label="Solicitud cancelada",
        hint="Contáctanos si deseas retomar el proceso.",
    ),
}

UNDER_REVIEW = NextStep(
    label="Solicitud en revisión",
    hint="Nuestro equipo está analizando la información enviada.",
)


def is_case_open(case: Optional[CollectionCaseSnapshot]) -> bool:
    return bool(case and case.status and case.status.lower() != CaseStatus.CLOSED.value)


def _collection_hint(case: CollectionCaseSnapshot) -> str:
    promise = parse_due_date(case.promise_date)
    if promise is not None:
        return f"Compromiso de pago para {promise.strftime('%d/%m/%Y')}"
    if case.next_action_at is not None:
        review_at = ensure_utc(case.next_action_at)
        return f"Revisión programada {review_at.strftime('%d/%m/%Y %H:%M')}"
    return COLLECTION_DEFAULT_HINT


def compute_next_steps(request_status: Optional[str], case: Optional[CollectionCaseSnapshot]) -> NextStep:
    """
    An open collection case takes precedence over the request status.

    The case hint prefers the promised payment date, then the next
    scheduled review, then a generic message.
    """
    if is_case_open(case):
        return NextStep(label=COLLECTION_LABEL, hint=_collection_hint(case))

    status = (request_status or "").lower()
    return STATUS_NEXT_STEPS.get(status, UNDER_REVIEW)
