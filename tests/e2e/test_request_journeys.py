"""
E2E journeys for a funding request, driven only through the HTTP API.

Journeys:
- manual: review -> offer -> accept -> sign -> disburse -> collections
- automatic: auto-approval -> disburse
- declined: offer rejected, request cancelled and archived
"""

from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

STAFF = {"X-User-Id": "analyst-7", "X-User-Email": "analista@factoring.co", "X-User-Staff": "true"}
CLIENT = {
    "X-User-Id": "cfo-3",
    "X-User-Email": "finanzas@textiles.co",
    "X-Membership-Role": "owner",
    "X-Membership-Status": "active",
}


def path(request, suffix=""):
    return f"/v1/companies/{request.company_id}/requests/{request.id}{suffix}"


def member(request):
    return {**CLIENT, "X-Company-Id": str(request.company_id)}


def statuses(client: TestClient, request):
    history = client.get(path(request, "/history"), headers=member(request)).json()
    return [event["to_status"] for event in history["events"]]


@pytest.mark.integration
def test_manual_offer_to_collections(client: TestClient, factory, notifier):
    """
    A pyme gets a standard offer, accepts it, signs, is funded and later
    promises a late payment to collections.
    """
    company = factory.company(name="Textiles Andinos", type="pyme")
    account = factory.bank_account(company, is_default=True)
    invoice = factory.invoice(company, due_date=date.today() + timedelta(days=45), amount=20_000_000)
    request = factory.request(company, amount=20_000_000, invoice=invoice)

    offer = client.post(path(request, "/offers"), json={"mode": "standard"}, headers=STAFF).json()
    assert offer["fees"] == {"processing": 100_000, "wire": 5_000}
    assert offer["net_amount"] == 17_000_000 - 105_000
    assert client.get(path(request, "/next-steps"), headers=member(request)).json()["label"] == "Aceptar oferta"

    accepted = client.post(
        f"/v1/companies/{request.company_id}/offers/{offer['offer_id']}/accept", headers=member(request)
    )
    assert accepted.status_code == 200

    signed = client.post(path(request, "/transition"), json={"target_status": "signed"}, headers=STAFF)
    assert signed.json()["status"] == "signed"
    assert client.get(path(request, "/next-steps"), headers=member(request)).json()["label"] == "Esperar desembolso"

    funded = client.post(path(request, "/disburse"), headers=member(request))
    assert funded.status_code == 200
    assert funded.json()["bank_account_id"] == str(account.id)
    assert client.get(path(request, "/next-steps"), headers=member(request)).json()["label"] == "Solicitud desembolsada"

    case = client.post("/v1/collections", json={"request_id": str(request.id), "priority": "high"}, headers=STAFF)
    assert case.status_code == 201
    case_id = case.json()["case_id"]
    assert case.json()["assigned_to"] == "analyst-7"

    client.post(
        f"/v1/collections/{case_id}/actions",
        json={"action_type": "call", "note": "Promete pagar el 20"},
        headers=STAFF,
    )
    client.patch(
        f"/v1/collections/{case_id}",
        json={"status": "promised", "promise_date": "2025-05-20", "promise_amount": 20000000},
        headers=STAFF,
    )

    step = client.get(path(request, "/next-steps"), headers=member(request)).json()
    assert step["label"] == "Seguimiento de cobranza en curso"
    assert step["hint"] == "Compromiso de pago para 20/05/2025"

    assert statuses(client, request) == ["offered", "accepted", "signed", "funded"]
    assert notifier.kinds() == [
        "request.status_changed",
        "offer.created",
        "request.status_changed",
        "offer.accepted",
        "request.status_changed",
        "request.status_changed",
        "payment.disbursement_requested",
        "collection.promise_updated",
    ]

    closed = client.patch(f"/v1/collections/{case_id}", json={"status": "closed"}, headers=STAFF)
    assert closed.json()["closed_at"] is not None
    assert client.get(path(request, "/next-steps"), headers=member(request)).json()["label"] == "Solicitud desembolsada"


@pytest.mark.integration
def test_auto_approval_then_disbursement(client: TestClient, factory, notifier):
    """A corporate client with a negotiated rate skips manual pricing"""
    company = factory.company(name="Grupo Industrial", type="corporativo")
    factory.bank_account(company)
    invoice = factory.invoice(company, due_date=date.today() + timedelta(days=90), amount=80_000_000)
    request = factory.request(company, amount=80_000_000, invoice=invoice)

    override = client.put(
        f"/v1/settings/companies/{company.id}", json={"discount_rate": "18"}, headers=STAFF
    ).json()
    assert override["advance_pct"] == 91

    offer = client.post(path(request, "/auto-approve"), headers=STAFF)
    assert offer.status_code == 200
    assert offer.json()["mode"] == "auto"
    assert offer.json()["advance_pct"] == 91
    assert offer.json()["annual_rate"] == pytest.approx(0.18)

    first = client.post(path(request, "/disburse"), headers=member(request)).json()
    replay = client.post(path(request, "/disburse"), headers=member(request)).json()

    assert first["created"] is True
    assert replay["created"] is False
    assert replay["payment_id"] == first["payment_id"]
    assert statuses(client, request) == ["accepted", "funded"]
    assert notifier.kinds().count("payment.disbursement_requested") == 1


@pytest.mark.integration
def test_rejected_offer_then_cancelled(client: TestClient, factory, notifier):
    company = factory.company(name="Café Origen", type="startup")
    request = factory.request(company, amount=5_000_000)

    offer = client.post(
        path(request, "/offers"),
        json={"mode": "custom", "custom": {"annual_rate_pct": 36, "valid_for_days": 3}},
        headers=STAFF,
    ).json()
    assert offer["annual_rate"] == pytest.approx(0.36)

    client.post(
        f"/v1/companies/{request.company_id}/offers/{offer['offer_id']}/reject", headers=member(request)
    )
    cancelled = client.post(path(request, "/transition"), json={"target_status": "cancelled"}, headers=STAFF)
    assert cancelled.json()["status"] == "cancelled"

    archived = client.post(path(request, "/transition"), json={"target_status": "archived"}, headers=STAFF)
    assert archived.json()["archived_at"] is not None

    reopened = client.post(path(request, "/transition"), json={"target_status": "review"}, headers=STAFF)
    assert reopened.status_code == 409

    assert statuses(client, request) == ["offered", "review", "cancelled", "archived"]
    assert "offer.rejected" in notifier.kinds()
