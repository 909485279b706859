"""Event outbox - side effects queued during a transaction, delivered after commit"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Protocol

from factoring_engine.domain.exceptions import UpstreamFailureError
from factoring_engine.domain.models import DomainEvent

logger = logging.getLogger(__name__)

STATUS_CHANGED = "request.status_changed"
OFFER_CREATED = "offer.created"
OFFER_ACCEPTED = "offer.accepted"
OFFER_REJECTED = "offer.rejected"
DISBURSEMENT_REQUESTED = "payment.disbursement_requested"
COLLECTION_PROMISE_UPDATED = "collection.promise_updated"


class Notifier(Protocol):
    async def notify(self, event_kind: str, company_id: str, payload: Dict[str, Any]) -> None: ...


class EventOutbox:
    """
    Collects events in emission order.

    Services record events while the transaction is open; callers deliver
    them only after commit, so a rolled-back operation never notifies.
    """

    def __init__(self) -> None:
        self.events: List[DomainEvent] = []

    def record(self, kind: str, company_id: Any, payload: Dict[str, Any]) -> DomainEvent:
        event = DomainEvent(kind=kind, company_id=str(company_id), payload=payload)
        self.events.append(event)
        return event

    @contextmanager
    def stage(self) -> Iterator["EventOutbox"]:
        """Events recorded inside the block are kept only if it exits cleanly"""
        staged = EventOutbox()
        yield staged
        self.events.extend(staged.events)

    def drain(self) -> List[DomainEvent]:
        drained, self.events = self.events, []
        return drained

    def kinds(self) -> List[str]:
        return [event.kind for event in self.events]


async def deliver_events(notifier: Notifier, events: List[DomainEvent]) -> None:
    """
    Best-effort, in-order delivery.

    A failed event is logged and skipped; the state change that produced
    it stays committed.
    """
    for event in events:
        try:
            await notifier.notify(event.kind, event.company_id, event.payload)
        except UpstreamFailureError as e:
            logger.warning(
                f"Notification delivery failed: {e.message}",
                extra={"event_kind": event.kind, "company_id": event.company_id},
            )
        except Exception as e:
            logger.error(
                f"Unexpected notification error: {e}",
                extra={"event_kind": event.kind, "company_id": event.company_id},
            )
