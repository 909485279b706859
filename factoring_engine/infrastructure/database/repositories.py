"""Data access layer for factoring entities"""

import uuid
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from factoring_engine.domain.models import (
    BankAccount,
    CaseStatus,
    LendingSettings,
    OfferStatus,
    OfferTerms,
    ParameterOverride,
    PaymentDirection,
    PaymentStatus,
)
from factoring_engine.domain.parameters import normalize_lending_settings, serialize_lending_settings
from factoring_engine.infrastructure.database.models import (
    BankAccountRow,
    CollectionActionRow,
    CollectionCaseRow,
    Company,
    CompanyParameterRow,
    FundingRequestInvoice,
    FundingRequestRow,
    HqSettingsRow,
    InvoiceRow,
    OfferRow,
    PaymentRow,
    RequestStatusEventRow,
)
from factoring_engine.utils.date_utils import ensure_utc

LENDING_SETTINGS_KEY = "lending_parameters"
DISBURSEMENT_NOTE = "Solicitud de desembolso en curso"


class RequestRepository:
    """Repository for funding requests"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, request_id: uuid.UUID, company_id: Optional[uuid.UUID] = None) -> Optional[FundingRequestRow]:
        """Fetch a request, optionally scoped to a tenant"""
        query = self.db.query(FundingRequestRow).filter(FundingRequestRow.id == request_id)
        if company_id is not None:
            query = query.filter(FundingRequestRow.company_id == company_id)
        return query.first()

    def get_company(self, company_id: uuid.UUID) -> Optional[Company]:
        return self.db.query(Company).filter(Company.id == company_id).first()

    def list_amounts_by_status(self, company_id: uuid.UUID, statuses: Iterable[str]) -> List[Any]:
        """Requested amounts of the company's requests in the given statuses"""
        rows = (
            self.db.query(FundingRequestRow.requested_amount)
            .filter(
                FundingRequestRow.company_id == company_id,
                FundingRequestRow.status.in_([getattr(status, "value", status) for status in statuses]),
            )
            .all()
        )
        return [row.requested_amount for row in rows]

    def compare_and_set_status(
        self,
        request_id: uuid.UUID,
        expected_status: str,
        new_status: str,
        changes: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Update status only if it still equals expected_status.

        Returns False when another writer changed the row first.
        """
        values = {FundingRequestRow.status: new_status}
        for name, value in (changes or {}).items():
            values[getattr(FundingRequestRow, name)] = value
        updated = (
            self.db.query(FundingRequestRow)
            .filter(FundingRequestRow.id == request_id, FundingRequestRow.status == expected_status)
            .update(values, synchronize_session="fetch")
        )
        return updated == 1


class StatusEventRepository:
    """Repository for the per-request status change log"""

    def __init__(self, db: Session):
        self.db = db

    def next_sequence(self, request_id: uuid.UUID) -> int:
        current = (
            self.db.query(func.max(RequestStatusEventRow.sequence))
            .filter(RequestStatusEventRow.request_id == request_id)
            .scalar()
        )
        return (current or 0) + 1

    def append(
        self,
        request_id: uuid.UUID,
        company_id: uuid.UUID,
        from_status: Optional[str],
        to_status: str,
        actor_id: Optional[str],
        created_at: datetime,
    ) -> RequestStatusEventRow:
        event = RequestStatusEventRow(
            request_id=request_id,
            company_id=company_id,
            sequence=self.next_sequence(request_id),
            from_status=from_status,
            to_status=to_status,
            actor_id=actor_id,
            created_at=created_at,
        )
        self.db.add(event)
        self.db.flush()
        return event

    def list_for_request(self, request_id: uuid.UUID) -> List[RequestStatusEventRow]:
        return (
            self.db.query(RequestStatusEventRow)
            .filter(RequestStatusEventRow.request_id == request_id)
            .order_by(RequestStatusEventRow.sequence.asc())
            .all()
        )


class InvoiceRepository:
    """Repository for invoices linked to requests"""

    def __init__(self, db: Session):
        self.db = db

    def linked_invoice_ids(self, request: FundingRequestRow) -> List[uuid.UUID]:
        """Direct invoice_id plus join-table links, deduplicated"""
        ids: List[uuid.UUID] = []
        if request.invoice_id:
            ids.append(request.invoice_id)
        links = (
            self.db.query(FundingRequestInvoice.invoice_id)
            .filter(FundingRequestInvoice.request_id == request.id)
            .all()
        )
        for link in links:
            if link.invoice_id and link.invoice_id not in ids:
                ids.append(link.invoice_id)
        return ids

    def get_many(self, invoice_ids: List[uuid.UUID]) -> List[InvoiceRow]:
        if not invoice_ids:
            return []
        return self.db.query(InvoiceRow).filter(InvoiceRow.id.in_(invoice_ids)).all()


class OfferRepository:
    """Repository for offers"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, offer_id: uuid.UUID) -> Optional[OfferRow]:
        return self.db.query(OfferRow).filter(OfferRow.id == offer_id).first()

    def get_latest(self, request_id: uuid.UUID) -> Optional[OfferRow]:
        return (
            self.db.query(OfferRow)
            .filter(OfferRow.request_id == request_id)
            .order_by(OfferRow.created_at.desc())
            .first()
        )

    def list_active(self, request_id: uuid.UUID) -> List[OfferRow]:
        return (
            self.db.query(OfferRow)
            .filter(OfferRow.request_id == request_id, OfferRow.status == OfferStatus.OFFERED.value)
            .all()
        )

    def create(
        self,
        request: FundingRequestRow,
        terms: OfferTerms,
        status: OfferStatus,
        created_by: Optional[str],
        created_at: datetime,
        accepted_by: Optional[str] = None,
    ) -> OfferRow:
        """Persist offer terms produced by the calculator"""
        offer = OfferRow(
            company_id=request.company_id,
            request_id=request.id,
            annual_rate=terms.annual_rate,
            advance_pct=terms.advance_pct,
            fees=dict(terms.fees),
            net_amount=terms.net_amount,
            valid_until=terms.valid_until,
            status=status.value,
            mode=terms.mode.value,
            created_by=created_by,
            accepted_by=accepted_by,
            accepted_at=created_at if accepted_by else None,
            created_at=created_at,
        )
        self.db.add(offer)
        self.db.flush()
        return offer


class BankAccountRepository:
    """Repository for company bank accounts"""

    def __init__(self, db: Session):
        self.db = db

    def list_for_company(self, company_id: uuid.UUID) -> List[BankAccount]:
        rows = (
            self.db.query(BankAccountRow)
            .filter(BankAccountRow.company_id == company_id)
            .order_by(BankAccountRow.created_at.asc())
            .all()
        )
        return [
            BankAccount(id=row.id, company_id=row.company_id, is_default=bool(row.is_default), created_at=row.created_at)
            for row in rows
        ]


class PaymentRepository:
    """Repository for payments"""

    def __init__(self, db: Session):
        self.db = db

    def get_outbound(self, company_id: uuid.UUID, request_id: uuid.UUID) -> Optional[PaymentRow]:
        return (
            self.db.query(PaymentRow)
            .filter(
                PaymentRow.company_id == company_id,
                PaymentRow.request_id == request_id,
                PaymentRow.direction == PaymentDirection.OUTBOUND.value,
            )
            .first()
        )

    def create_outbound(
        self,
        request: FundingRequestRow,
        bank_account_id: uuid.UUID,
        currency: str,
        now: datetime,
    ) -> PaymentRow:
        payment = PaymentRow(
            company_id=request.company_id,
            request_id=request.id,
            bank_account_id=bank_account_id,
            direction=PaymentDirection.OUTBOUND.value,
            status=PaymentStatus.PENDING.value,
            amount=request.requested_amount,
            currency=currency,
            notes=DISBURSEMENT_NOTE,
            created_at=now,
            updated_at=now,
        )
        self.db.add(payment)
        self.db.flush()
        return payment

    def refresh_outbound(
        self,
        payment: PaymentRow,
        request: FundingRequestRow,
        bank_account_id: uuid.UUID,
        currency: str,
        now: datetime,
    ) -> PaymentRow:
        payment.bank_account_id = bank_account_id
        payment.amount = request.requested_amount
        payment.currency = currency
        payment.status = PaymentStatus.PENDING.value
        payment.updated_at = now
        self.db.flush()
        return payment


class SqlSettingsStore:
    """SettingsStore backed by the hq_settings table (last write wins)"""

    def __init__(self, db: Session, key: str = LENDING_SETTINGS_KEY):
        self.db = db
        self.key = key

    def get(self) -> LendingSettings:
        row = self.db.query(HqSettingsRow).filter(HqSettingsRow.key == self.key).first()
        if row is None:
            return normalize_lending_settings(None)
        lending = normalize_lending_settings(row.value)
        lending.updated_at = ensure_utc(row.updated_at) if row.updated_at else None
        lending.updated_by = row.updated_by
        return lending

    def put(self, lending: LendingSettings, actor_id: Optional[str], now: datetime) -> LendingSettings:
        row = self.db.query(HqSettingsRow).filter(HqSettingsRow.key == self.key).first()
        if row is None:
            row = HqSettingsRow(key=self.key)
            self.db.add(row)
        row.value = serialize_lending_settings(lending)
        row.updated_at = now
        row.updated_by = actor_id
        self.db.flush()
        lending.updated_at = now
        lending.updated_by = actor_id
        return lending


class CompanyParameterRepository:
    """Repository for per-company parameter overrides"""

    def __init__(self, db: Session):
        self.db = db

    def get(self, company_id: uuid.UUID) -> Optional[ParameterOverride]:
        row = self.db.query(CompanyParameterRow).filter(CompanyParameterRow.company_id == company_id).first()
        if row is None:
            return None
        return ParameterOverride(
            company_id=row.company_id,
            discount_rate=row.discount_rate,
            advance_pct=row.advance_pct,
            operation_days=row.operation_days,
        )

    def upsert(self, override: ParameterOverride, actor_id: Optional[str], now: datetime) -> ParameterOverride:
        row = (
            self.db.query(CompanyParameterRow)
            .filter(CompanyParameterRow.company_id == override.company_id)
            .first()
        )
        if row is None:
            row = CompanyParameterRow(company_id=override.company_id)
            self.db.add(row)
        row.discount_rate = override.discount_rate
        row.advance_pct = override.advance_pct
        row.operation_days = override.operation_days
        row.updated_at = now
        row.updated_by = actor_id
        self.db.flush()
        return override

    def delete(self, company_id: uuid.UUID) -> bool:
        deleted = (
            self.db.query(CompanyParameterRow)
            .filter(CompanyParameterRow.company_id == company_id)
            .delete(synchronize_session="fetch")
        )
        return deleted > 0


class CollectionRepository:
    """Repository for collection cases and actions"""

    def __init__(self, db: Session):
        self.db = db

    def get_case(self, case_id: uuid.UUID) -> Optional[CollectionCaseRow]:
        return self.db.query(CollectionCaseRow).filter(CollectionCaseRow.id == case_id).first()

    def get_open_case(self, request_id: uuid.UUID) -> Optional[CollectionCaseRow]:
        return (
            self.db.query(CollectionCaseRow)
            .filter(
                CollectionCaseRow.request_id == request_id,
                CollectionCaseRow.status != CaseStatus.CLOSED.value,
            )
            .order_by(CollectionCaseRow.opened_at.desc())
            .first()
        )

    def create_case(
        self,
        request: FundingRequestRow,
        now: datetime,
        priority: Optional[str] = None,
        assigned_to: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> CollectionCaseRow:
        case = CollectionCaseRow(
            request_id=request.id,
            company_id=request.company_id,
            status=CaseStatus.OPEN.value,
            priority=priority,
            assigned_to=assigned_to,
            notes=notes,
            opened_at=now,
            created_at=now,
            updated_at=now,
        )
        self.db.add(case)
        self.db.flush()
        return case

    def add_action(self, case: CollectionCaseRow, values: Dict[str, Any]) -> CollectionActionRow:
        action = CollectionActionRow(
            case_id=case.id,
            request_id=case.request_id,
            company_id=case.company_id,
            **values,
        )
        self.db.add(action)
        self.db.flush()
        return action

    def list_actions(self, case_id: uuid.UUID) -> List[CollectionActionRow]:
        return (
            self.db.query(CollectionActionRow)
            .filter(CollectionActionRow.case_id == case_id)
            .order_by(CollectionActionRow.created_at.asc())
            .all()
        )
