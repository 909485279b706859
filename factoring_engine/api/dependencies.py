"""Dependency injection for FastAPI endpoints"""

import uuid
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, HTTPException, Request

from factoring_engine.domain.models import Actor
from factoring_engine.infrastructure.clients.notifications import NotificationClient
from factoring_engine.services.events import EventOutbox, Notifier, deliver_events

ACTIVE_MEMBERSHIP = "active"


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_actor(
    x_user_id: Optional[str] = Header(None),
    x_user_email: Optional[str] = Header(None),
    x_user_staff: Optional[str] = Header(None),
    x_membership_role: Optional[str] = Header(None),
    x_membership_status: Optional[str] = Header(None),
    x_company_id: Optional[str] = Header(None),
) -> Actor:
    """
    Caller identity forwarded by the auth gateway.

    The gateway authenticates the session; this service trusts the headers.
    Clients (non-staff) must hold an active membership in the company named
    by X-Company-Id.
    """
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    actor = Actor(
        user_id=x_user_id,
        email=x_user_email,
        is_staff=(x_user_staff or "").lower() in ("1", "true", "yes"),
        membership_role=x_membership_role,
        membership_status=x_membership_status,
        company_id=x_company_id,
    )
    if not actor.is_staff and (actor.membership_status or "").lower() != ACTIVE_MEMBERSHIP:
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor


def get_staff_actor(actor: Actor = Depends(get_actor)) -> Actor:
    if not actor.is_staff:
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor


def get_company_actor(company_id: uuid.UUID, actor: Actor = Depends(get_actor)) -> Actor:
    """Staff may act on any company; clients only on their own"""
    if not actor.is_staff and (actor.company_id or "").lower() != str(company_id):
        raise HTTPException(status_code=403, detail="Forbidden")
    return actor


def get_notifier() -> NotificationClient:
    """Provide notification webhook client instance"""
    return NotificationClient()


def schedule_delivery(background_tasks: BackgroundTasks, notifier: Notifier, outbox: EventOutbox) -> None:
    """Hand committed events to the notifier once the response is sent"""
    events = outbox.drain()
    if events:
        background_tasks.add_task(deliver_events, notifier, events)
