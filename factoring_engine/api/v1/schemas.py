"""Pydantic schemas for API request/response validation"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class OfferPreviewRequest(BaseModel):
    """Request body for POST /v1/offers/preview"""

    requested_amount: float = Field(..., gt=0, description="Requested amount in COP")
    mode: str = Field("standard", pattern="^(standard|custom)$")
    annual_rate_pct: Optional[float] = None
    advance_pct: Optional[float] = None
    processing_fee: Optional[float] = None
    wire_fee: Optional[float] = None
    valid_for_days: Optional[float] = None


class CustomOfferFields(BaseModel):
    """Staff-supplied pricing; omitted fields take the standard values"""

    annual_rate_pct: Optional[float] = None
    advance_pct: Optional[float] = None
    processing_fee: Optional[float] = None
    wire_fee: Optional[float] = None
    valid_for_days: Optional[float] = None


class CreateOfferRequest(BaseModel):
    """Request body for POST .../requests/{request_id}/offers"""

    mode: str = Field("standard", pattern="^(standard|custom)$")
    custom: Optional[CustomOfferFields] = None


class OfferTermsResponse(BaseModel):
    annual_rate: float
    advance_pct: float
    fees: Dict[str, int]
    net_amount: int
    valid_until: datetime
    mode: str


class OfferResponse(BaseModel):
    offer_id: str
    request_id: str
    status: str
    mode: str
    annual_rate: float
    advance_pct: float
    fees: Dict[str, int]
    net_amount: float
    valid_until: datetime
    accepted_by: Optional[str] = None
    created_at: datetime


class TransitionRequest(BaseModel):
    """Request body for POST .../requests/{request_id}/transition"""

    target_status: str = Field(..., min_length=1)


class RequestStatusResponse(BaseModel):
    request_id: str
    company_id: str
    status: str
    disbursement_account_id: Optional[str] = None
    disbursed_at: Optional[datetime] = None
    archived_at: Optional[datetime] = None


class StatusEventItem(BaseModel):
    sequence: int
    from_status: Optional[str] = None
    to_status: str
    actor_id: Optional[str] = None
    created_at: datetime


class StatusHistoryResponse(BaseModel):
    request_id: str
    events: List[StatusEventItem]


class DisburseRequest(BaseModel):
    """Request body for POST .../requests/{request_id}/disburse"""

    bank_account_id: Optional[str] = None


class DisbursementResponse(BaseModel):
    payment_id: str
    request_id: str
    bank_account_id: str
    created: bool
    status: str


class NextStepResponse(BaseModel):
    label: str
    hint: str


class OpenCaseRequest(BaseModel):
    """Request body for POST /v1/collections"""

    request_id: str
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None


class CaseUpdateRequest(BaseModel):
    """Partial update; only fields present in the body are applied"""

    status: Optional[str] = None
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    next_action_at: Optional[datetime] = None
    promise_amount: Optional[Decimal] = None
    promise_date: Optional[date] = None


class CaseResponse(BaseModel):
    case_id: str
    request_id: str
    company_id: str
    status: str
    priority: Optional[str] = None
    assigned_to: Optional[str] = None
    notes: Optional[str] = None
    opened_at: datetime
    closed_at: Optional[datetime] = None
    next_action_at: Optional[datetime] = None
    promise_amount: Optional[float] = None
    promise_date: Optional[date] = None
    next_steps: Optional[NextStepResponse] = None


class ActionRequest(BaseModel):
    """Request body for POST /v1/collections/{case_id}/actions"""

    action_type: Optional[str] = None
    note: Optional[str] = None
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: Optional[Dict[str, Any]] = None


class ActionItem(BaseModel):
    action_id: str
    action_type: str
    note: Optional[str] = None
    due_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    created_by: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None
    created_at: datetime


class ActionListResponse(BaseModel):
    case_id: str
    actions: List[ActionItem]


class LendingSettingsResponse(BaseModel):
    settings: Dict[str, Any]
    updated_at: Optional[datetime] = None
    updated_by: Optional[str] = None


class CompanyParametersRequest(BaseModel):
    """Per-company overrides; numeric strings with "," decimals are accepted"""

    discount_rate: Optional[Any] = None
    advance_pct: Optional[Any] = None
    operation_days: Optional[Any] = None


class ResolvedParametersResponse(BaseModel):
    company_id: str
    discount_rate: float
    advance_pct: float
    operation_days: int
    credit_limit: float
    exposure_ratio: float
    tenor_buffer_days: float
    segment: str
    source: str
