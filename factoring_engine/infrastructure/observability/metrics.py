"""Prometheus metrics for lifecycle transitions, approvals, disbursements and notifications"""

from prometheus_client import Counter, Histogram

# Lifecycle metrics
transition_counter = Counter(
    "factoring_status_transitions_total",
    "Funding request status transitions",
    ["from_status", "to_status"],
)

auto_approval_counter = Counter(
    "factoring_auto_approval_total",
    "Auto-approval evaluations",
    ["outcome"],  # approved | exposure_exceeded | tenor_exceeded | not_in_review
)

offer_counter = Counter(
    "factoring_offers_total",
    "Offers created by pricing mode",
    ["mode"],  # standard | custom | auto
)

offer_net_amount_histogram = Histogram(
    "factoring_offer_net_amount",
    "Net amount of created offers",
    buckets=[1e6, 5e6, 1e7, 5e7, 1e8, 2.5e8, 5e8],
)

# Disbursement metrics
disbursement_counter = Counter(
    "factoring_disbursements_total",
    "Disbursement requests by payment outcome",
    ["outcome"],  # created | updated | rejected
)

# Notification metrics
notification_latency_histogram = Histogram(
    "notification_latency_seconds",
    "Notification webhook response time",
    buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

notification_failure_counter = Counter(
    "notification_failures_total",
    "Failed notification deliveries",
    ["event_kind"],
)

# Service health
request_duration_histogram = Histogram(
    "http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint", "status"],
)


def record_transition(from_status: str | None, to_status: str) -> None:
    transition_counter.labels(from_status=from_status or "none", to_status=to_status).inc()


def record_offer(mode: str, net_amount: float) -> None:
    """Record offer metrics for pricing distribution analysis"""
    offer_counter.labels(mode=mode).inc()
    offer_net_amount_histogram.observe(net_amount)
