"""Pytest fixtures for testing"""

import uuid
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional, Tuple

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from factoring_engine.api.dependencies import get_notifier
from factoring_engine.api.main import create_app
from factoring_engine.domain.models import Actor
from factoring_engine.infrastructure.database.models import (
    Base,
    BankAccountRow,
    Company,
    FundingRequestInvoice,
    FundingRequestRow,
    InvoiceRow,
    PaymentRow,
)
from factoring_engine.infrastructure.database.session import get_db
from factoring_engine.services.events import EventOutbox


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

NOW = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)

STAFF_HEADERS = {"X-User-Id": "staff-1", "X-User-Email": "ops@factoring.co", "X-User-Staff": "true"}
CLIENT_HEADERS = {
    "X-User-Id": "client-1",
    "X-User-Email": "cfo@cliente.co",
    "X-Membership-Role": "owner",
    "X-Membership-Status": "active",
}


class RecordingNotifier:
    """Notifier double that keeps delivered events in order"""

    def __init__(self) -> None:
        self.sent: List[Tuple[str, str, Dict[str, Any]]] = []

    async def notify(self, event_kind: str, company_id: str, payload: Dict[str, Any]) -> None:
        self.sent.append((event_kind, company_id, payload))

    def kinds(self) -> List[str]:
        return [kind for kind, _, _ in self.sent]


class Factory:
    """Seed-data helpers; every row is committed so services see it"""

    def __init__(self, db: Session):
        self.db = db

    def _save(self, row):
        self.db.add(row)
        self.db.commit()
        return row

    def company(self, name: str = "Textiles Andinos", type: Optional[str] = "pyme") -> Company:
        return self._save(Company(id=uuid.uuid4(), name=name, type=type))

    def bank_account(
        self,
        company: Company,
        is_default: bool = False,
        created_at: datetime = NOW,
    ) -> BankAccountRow:
        return self._save(
            BankAccountRow(
                id=uuid.uuid4(),
                company_id=company.id,
                bank_name="Bancolombia",
                account_number="000123",
                is_default=is_default,
                created_at=created_at,
            )
        )

    def invoice(self, company: Company, due_date: Optional[date], amount: Any = 10_000_000) -> InvoiceRow:
        return self._save(
            InvoiceRow(id=uuid.uuid4(), company_id=company.id, amount=Decimal(str(amount)), due_date=due_date)
        )

    def request(
        self,
        company: Company,
        amount: Any = 10_000_000,
        status: str = "review",
        invoice: Optional[InvoiceRow] = None,
        extra_invoices: Optional[List[InvoiceRow]] = None,
        currency: str = "COP",
    ) -> FundingRequestRow:
        row = self._save(
            FundingRequestRow(
                id=uuid.uuid4(),
                company_id=company.id,
                status=status,
                requested_amount=Decimal(str(amount)),
                currency=currency,
                invoice_id=invoice.id if invoice else None,
                created_at=NOW,
                updated_at=NOW,
            )
        )
        for linked in extra_invoices or []:
            self._save(FundingRequestInvoice(request_id=row.id, invoice_id=linked.id))
        return row

    def outbound_payments(self, request: FundingRequestRow) -> List[PaymentRow]:
        return (
            self.db.query(PaymentRow)
            .filter(PaymentRow.request_id == request.id, PaymentRow.direction == "outbound")
            .all()
        )


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def factory(db: Session) -> Factory:
    return Factory(db)


@pytest.fixture
def staff() -> Actor:
    return Actor(user_id="staff-1", email="ops@factoring.co", is_staff=True)


@pytest.fixture
def client_actor() -> Actor:
    return Actor(user_id="client-1", email="cfo@cliente.co", membership_role="owner", membership_status="active")


@pytest.fixture
def outbox() -> EventOutbox:
    return EventOutbox()


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def client(db: Session, notifier: RecordingNotifier) -> TestClient:
    """Create FastAPI test client with test database and recording notifier"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notifier] = lambda: notifier
    return TestClient(app)
