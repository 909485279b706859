"""Notification webhook client with exponential backoff retry logic"""

import asyncio
from typing import Any, Dict, Optional

import httpx

from factoring_engine.config import settings
from factoring_engine.domain.exceptions import UpstreamFailureError
from factoring_engine.infrastructure.observability.metrics import (
    notification_failure_counter,
    notification_latency_histogram,
)


class NotificationClient:
    """Client for the notification sender (e-mail/SMS fan-out lives behind it)"""

    def __init__(
        self,
        webhook_url: str | None = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_retries: int | None = None,
        backoff_base: float | None = None,
    ):
        self.webhook_url = webhook_url or settings.notification_webhook_url
        self.transport = transport
        self.max_retries = max_retries if max_retries is not None else settings.webhook_max_retries
        self.backoff_base = backoff_base if backoff_base is not None else settings.webhook_backoff_base
        self.timeout = settings.http_timeout_seconds

    async def notify(self, event_kind: str, company_id: str, payload: Dict[str, Any]) -> None:
        """
        Deliver one event to the notification sender.

        Retry strategy:
        - Exponential backoff: 1s, 2s, 4s, 8s (base * 2^attempt)
        - Retries on 5xx/4xx responses and network failures
        - Tracks latency histogram and failure counter

        Raises:
            UpstreamFailureError: after the last retry fails
        """
        body = {"event": event_kind, "company_id": company_id, "payload": payload}
        attempt = 0
        async with httpx.AsyncClient(transport=self.transport, timeout=self.timeout) as client:
            while attempt < self.max_retries:
                try:
                    with notification_latency_histogram.time():
                        response = await client.post(self.webhook_url, json=body)
                        response.raise_for_status()
                        return  # Success

                except (httpx.HTTPStatusError, httpx.RequestError) as e:
                    attempt += 1
                    notification_failure_counter.labels(event_kind=event_kind).inc()

                    if attempt >= self.max_retries:
                        raise UpstreamFailureError(f"Notificación {event_kind} no entregada: {e}") from e

                    backoff = self.backoff_base * (2 ** (attempt - 1))
                    await asyncio.sleep(backoff)
