"""SQLAlchemy ORM models for the factoring tables"""

import uuid
from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func, text

Base = declarative_base()

Money = Numeric(18, 2)


class Company(Base):
    """Tenant (client company)"""

    __tablename__ = "companies"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(Text, nullable=False)
    type = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    bank_accounts = relationship("BankAccountRow", back_populates="company", cascade="all, delete-orphan")


class BankAccountRow(Base):
    """Company bank account used as disbursement destination"""

    __tablename__ = "bank_accounts"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    bank_name = Column(Text, nullable=True)
    account_number = Column(Text, nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    company = relationship("Company", back_populates="bank_accounts")


class InvoiceRow(Base):
    __tablename__ = "invoices"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Money, nullable=True)
    due_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class FundingRequestRow(Base):
    """One factoring operation; status changes only through the lifecycle service"""

    __tablename__ = "funding_requests"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(Text, nullable=False, default="review", index=True)
    requested_amount = Column(Money, nullable=False)
    currency = Column(Text, nullable=False, default="COP")
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)
    disbursement_account_id = Column(
        UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True
    )
    disbursed_at = Column(DateTime(timezone=True), nullable=True)
    archived_at = Column(DateTime(timezone=True), nullable=True)
    archived_by = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())

    offers = relationship("OfferRow", back_populates="request", cascade="all, delete-orphan")
    status_events = relationship(
        "RequestStatusEventRow",
        back_populates="request",
        cascade="all, delete-orphan",
        order_by="RequestStatusEventRow.sequence",
    )


class FundingRequestInvoice(Base):
    """Join table linking a request to additional invoices"""

    __tablename__ = "funding_request_invoices"

    request_id = Column(
        UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), primary_key=True
    )
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id", ondelete="CASCADE"), primary_key=True)


class OfferRow(Base):
    """Priced terms for a request; at most one in status 'offered' per request"""

    __tablename__ = "offers"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    request_id = Column(
        UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    annual_rate = Column(Float, nullable=False)
    advance_pct = Column(Float, nullable=False)
    fees = Column(JSON, nullable=False, default=dict)
    net_amount = Column(Money, nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False, default="offered")
    mode = Column(Text, nullable=False, default="standard")
    created_by = Column(Text, nullable=True)
    accepted_by = Column(Text, nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    request = relationship("FundingRequestRow", back_populates="offers")


class PaymentRow(Base):
    """Money transfer; a single outbound row per request is enforced by a partial index"""

    __tablename__ = "payments"
    __table_args__ = (
        Index(
            "uq_payments_outbound_request",
            "company_id",
            "request_id",
            unique=True,
            postgresql_where=text("direction = 'outbound'"),
            sqlite_where=text("direction = 'outbound'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    request_id = Column(UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False)
    bank_account_id = Column(UUID(as_uuid=True), ForeignKey("bank_accounts.id", ondelete="SET NULL"), nullable=True)
    direction = Column(Text, nullable=False)
    amount = Column(Money, nullable=False)
    currency = Column(Text, nullable=False, default="COP")
    status = Column(Text, nullable=False, default="pending")
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class HqSettingsRow(Base):
    """Key/value store for process-wide lending settings"""

    __tablename__ = "hq_settings"

    key = Column(Text, primary_key=True)
    value = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Text, nullable=True)


class CompanyParameterRow(Base):
    __tablename__ = "hq_company_parameters"

    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True)
    discount_rate = Column(Float, nullable=True)
    advance_pct = Column(Float, nullable=True)
    operation_days = Column(Integer, nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=True)
    updated_by = Column(Text, nullable=True)


class CollectionCaseRow(Base):
    """Follow-up record for a delinquent request; one non-closed case per request"""

    __tablename__ = "collection_cases"
    __table_args__ = (
        Index(
            "uq_collection_cases_open_request",
            "request_id",
            unique=True,
            postgresql_where=text("status <> 'closed'"),
            sqlite_where=text("status <> 'closed'"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    status = Column(Text, nullable=False, default="open")
    priority = Column(Text, nullable=True)
    assigned_to = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)
    opened_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)
    next_action_at = Column(DateTime(timezone=True), nullable=True)
    promise_amount = Column(Money, nullable=True)
    promise_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    actions = relationship(
        "CollectionActionRow",
        back_populates="case",
        cascade="all, delete-orphan",
        order_by="CollectionActionRow.created_at",
    )


class CollectionActionRow(Base):
    """Append-only log entry under a collection case"""

    __tablename__ = "collection_actions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    case_id = Column(UUID(as_uuid=True), ForeignKey("collection_cases.id", ondelete="CASCADE"), nullable=False)
    request_id = Column(UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    action_type = Column(Text, nullable=False)
    note = Column(Text, nullable=True)
    due_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_by = Column(Text, nullable=True)
    created_by_name = Column(Text, nullable=True)
    action_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    case = relationship("CollectionCaseRow", back_populates="actions")


class RequestStatusEventRow(Base):
    """Ordered status-change log; sequence is unique per request"""

    __tablename__ = "request_status_events"
    __table_args__ = (UniqueConstraint("request_id", "sequence", name="uq_request_status_events_sequence"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    request_id = Column(UUID(as_uuid=True), ForeignKey("funding_requests.id", ondelete="CASCADE"), nullable=False)
    company_id = Column(UUID(as_uuid=True), ForeignKey("companies.id", ondelete="CASCADE"), nullable=False)
    sequence = Column(Integer, nullable=False)
    from_status = Column(Text, nullable=True)
    to_status = Column(Text, nullable=False)
    actor_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    request = relationship("FundingRequestRow", back_populates="status_events")
