"""Domain models - pure Python dataclasses representing business entities"""

import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional


class RequestStatus(str, Enum):
    """Canonical status of a funding request"""

    REVIEW = "review"
    OFFERED = "offered"
    ACCEPTED = "accepted"
    SIGNED = "signed"
    FUNDED = "funded"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    ARCHIVED = "archived"


# Statuses that count towards a company's exposure
ACTIVE_STATUSES = frozenset(
    {
        RequestStatus.REVIEW,
        RequestStatus.OFFERED,
        RequestStatus.ACCEPTED,
        RequestStatus.SIGNED,
        RequestStatus.FUNDED,
    }
)


class OfferStatus(str, Enum):
    OFFERED = "offered"
    ACCEPTED = "accepted"
    CANCELLED = "cancelled"


class OfferMode(str, Enum):
    STANDARD = "standard"
    CUSTOM = "custom"
    AUTO = "auto"


class PaymentDirection(str, Enum):
    OUTBOUND = "outbound"
    INBOUND = "inbound"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    FAILED = "failed"


class CaseStatus(str, Enum):
    OPEN = "open"
    PROMISED = "promised"
    ESCALATED = "escalated"
    CLOSED = "closed"


@dataclass(frozen=True)
class Actor:
    """Caller identity supplied by the auth collaborator"""

    user_id: str
    email: Optional[str] = None
    is_staff: bool = False
    membership_role: Optional[str] = None
    membership_status: Optional[str] = None
    company_id: Optional[str] = None


@dataclass
class OfferTerms:
    """Priced offer produced by the offer calculator"""

    annual_rate: float  # fraction, 0.30 == 30% EA
    advance_pct: float  # 0-100
    fees: Dict[str, int]
    net_amount: int
    valid_until: datetime
    mode: OfferMode = OfferMode.STANDARD

    @property
    def fees_total(self) -> int:
        return sum(self.fees.values())


@dataclass
class CustomOfferInput:
    """Staff-supplied pricing; any missing or non-finite field takes its default"""

    annual_rate_pct: Optional[float] = None
    advance_pct: Optional[float] = None
    processing_fee: Optional[float] = None
    wire_fee: Optional[float] = None
    valid_for_days: Optional[float] = None


@dataclass
class AutoApprovalSettings:
    max_exposure_ratio: float = 1.0
    max_tenor_buffer_days: float = 5.0
    min_risk_level: str = "medium"


@dataclass
class LendingSettings:
    """Process-wide lending parameters (the hq_settings record)"""

    discount_rate: float  # percent EA
    credit_limits: Dict[str, float]
    terms: Dict[str, float]  # days per segment
    auto_approval: AutoApprovalSettings = field(default_factory=AutoApprovalSettings)
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


@dataclass
class ParameterOverride:
    """Per-company overrides; None falls back to segment/global defaults"""

    company_id: uuid.UUID
    discount_rate: Optional[float] = None
    advance_pct: Optional[float] = None
    operation_days: Optional[float] = None


@dataclass
class ResolvedParameters:
    """Effective pricing and risk parameters for one company"""

    discount_rate: float  # percent EA
    advance_pct: float
    operation_days: int
    credit_limit: float
    exposure_ratio: float
    tenor_buffer_days: float
    segment: str
    source: str  # company_override | segment_default | global_default


@dataclass
class BankAccount:
    id: uuid.UUID
    company_id: uuid.UUID
    is_default: bool = False
    created_at: Optional[datetime] = None


@dataclass
class ExposureAssessment:
    """Outcome of the auto-approval risk checks"""

    total_exposure: Decimal
    exposure_limit: Optional[Decimal]
    max_tenor_days: Optional[int]
    tenor_limit_days: float


@dataclass
class CollectionCaseSnapshot:
    status: str
    next_action_at: Optional[datetime] = None
    promise_amount: Optional[Decimal] = None
    promise_date: Optional[date] = None


@dataclass
class NextStep:
    """Borrower-facing next step"""

    label: str
    hint: str


@dataclass
class DomainEvent:
    """Event handed to the notification collaborator after commit"""

    kind: str
    company_id: str
    payload: Dict[str, Any]


@dataclass
class DisbursementResult:
    payment_id: uuid.UUID
    request_id: uuid.UUID
    bank_account_id: uuid.UUID
    created: bool


@dataclass
class CaseUpdate:
    """Partial update of a collection case; only fields in `fields_set` are applied"""

    values: Dict[str, Any]

    @property
    def fields_set(self) -> List[str]:
        return list(self.values.keys())


@dataclass
class CollectionActionInput:
    action_type: Optional[str]
    note: Optional[str] = None
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None
