import pytest

import coursechat.payments.router as payment_router
from coursechat.chat.store import InMemoryMessageStore


def test_health_reports_store_and_connections(client):
    body = client.get("/health").json()
    assert body == {"status": "ok", "store": "up", "connections": 0}


class UnreachableStore(InMemoryMessageStore):
    async def ping(self):
        return False


@pytest.mark.parametrize("store", [UnreachableStore()])
def test_health_degrades_when_store_is_down(client):
    body = client.get("/health").json()

    assert body["status"] == "degraded"
    assert body["store"] == "down"


def test_version(client):
    assert client.get("/version").json()["status"] == "stable"


def test_payment_requires_invoice_amount_and_method(client):
    response = client.post("/api/payment", json={"invoiceId": "INV-7", "service": "Course fee"})

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Missing required payment information."}


def test_payment_succeeds_after_simulated_delay(client, monkeypatch):
    monkeypatch.setattr(payment_router, "PAYMENT_PROCESSING_DELAY_SECONDS", 0)

    response = client.post("/api/payment", json={
        "invoiceId": "INV-7",
        "amount": 149.99,
        "service": "Data Structures",
        "paymentMethodType": "card"
    })

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["transactionId"].startswith("TXN-")
    assert body["message"] == "Payment for invoice INV-7 processed successfully."


def test_payment_without_a_body_gets_the_missing_fields_answer(client):
    response = client.post("/api/payment")

    assert response.status_code == 400
    assert response.json() == {"success": False, "message": "Missing required payment information."}


def test_payment_accepts_non_string_identifiers(client, monkeypatch):
    monkeypatch.setattr(payment_router, "PAYMENT_PROCESSING_DELAY_SECONDS", 0)

    response = client.post("/api/payment", json={"invoiceId": 7, "amount": "49", "paymentMethodType": 1})

    assert response.status_code == 200
    assert response.json()["message"] == "Payment for invoice 7 processed successfully."


def test_payment_rejects_zero_amount(client):
    response = client.post("/api/payment", json={"invoiceId": "INV-8", "amount": 0, "paymentMethodType": "upi"})

    assert response.status_code == 400
