"""Tests for the HTTP API."""

import httpx
import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import create_async_engine as sa_create_async_engine
from sqlalchemy.pool import StaticPool

from payments_adapter.api import app, get_connector, lifespan
from payments_adapter.auth import limiter
from payments_adapter.connectors.helcim import HelcimConnector
from payments_adapter.database import (
    PaymentAttempt,
    Refund,
    close_db,
    get_async_session_factory,
    init_db,
)
from payments_adapter.database import session as session_module
from payments_adapter.errors import ConnectorTimeout
from payments_adapter.transport import HttpxTransport


@pytest.fixture
async def client(fake_transport, mock_api_key):
    """API client backed by a fresh in-memory database and a fake Helcim transport."""
    await init_db("sqlite+aiosqlite:///:memory:")
    limiter.reset()
    app.dependency_overrides[get_connector] = lambda: HelcimConnector(fake_transport)
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    app.dependency_overrides.clear()
    await close_db()


@pytest.fixture
def mock_api_key(monkeypatch):
    monkeypatch.setenv("API_KEY", "test_api_key_12345")
    monkeypatch.setenv("MERCHANT_ID", "merchant_123")
    return "test_api_key_12345"


@pytest.fixture
def auth_headers(mock_api_key):
    return {"Authorization": f"Bearer {mock_api_key}"}


@pytest.fixture
def payment_body():
    return {
        "amount": 1025,
        "currency": "USD",
        "capture_method": "manual",
        "payment_method_data": {
            "type": "card",
            "card_number": "4242424242424242",
            "card_exp_month": "03",
            "card_exp_year": "2030",
            "card_cvc": "123",
        },
        "billing": {
            "address": {"first_name": "Jane", "line1": "1 Main St", "zip": "T2P 1J9"},
        },
        "browser_info": {"ip_address": "203.0.113.7"},
    }


async def _load_attempts():
    session_factory = get_async_session_factory()
    async with session_factory() as session:
        result = await session.execute(select(PaymentAttempt))
        return list(result.scalars().all())


async def _load_refunds():
    session_factory = get_async_session_factory()
    async with session_factory() as session:
        result = await session.execute(select(Refund))
        return list(result.scalars().all())


class TestAuthentication:

    async def test_missing_credentials(self, client, payment_body):
        response = await client.post("/payments", json=payment_body)
        assert response.status_code in (401, 403)

    async def test_invalid_key(self, client, payment_body):
        response = await client.post(
            "/payments", json=payment_body, headers={"Authorization": "Bearer wrong"}
        )
        assert response.status_code == 401


class TestPaymentsApi:
    """Tests for the payment endpoints."""

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json()["connector"] == "helcim"

    async def test_authorize_capture_refund(self, client, fake_transport, auth_headers, payment_body):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "preAuth"})
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 2001, "type": "capture"})
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 3001, "type": "refund"})

        created = await client.post("/payments", json=payment_body, headers=auth_headers)
        assert created.status_code == 200
        attempt = created.json()
        assert attempt["status"] == "authorized"
        assert attempt["merchant_id"] == "merchant_123"

        captured = await client.post(
            f"/payments/{attempt['attempt_id']}/capture",
            json={"amount": 1025, "browser_info": {"ip_address": "203.0.113.7"}},
            headers=auth_headers,
        )
        assert captured.json()["status"] == "charged"

        refunded = await client.post(
            f"/payments/{attempt['attempt_id']}/refund",
            json={"amount": 500, "browser_info": {"ip_address": "203.0.113.7"}},
            headers=auth_headers,
        )
        assert refunded.status_code == 200
        assert refunded.json()["status"] == "success"
        assert fake_transport.requests[-1].json["originalTransactionId"] == 2001

        retrieved = await client.get(f"/payments/{attempt['attempt_id']}", headers=auth_headers)
        assert retrieved.json()["amount_captured"] == 1025

    async def test_missing_billing_address(self, client, fake_transport, auth_headers, payment_body):
        payment_body["billing"] = None

        response = await client.post("/payments", json=payment_body, headers=auth_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["error_code"] == "missing_required_field"
        assert error["field_name"] == "billing.address"
        assert fake_transport.requests == []

    async def test_wallet_not_implemented(self, client, auth_headers, payment_body):
        payment_body["payment_method_data"] = {
            "type": "wallet", "wallet_type": "apple_pay", "token": "tok"
        }
        response = await client.post("/payments", json=payment_body, headers=auth_headers)
        assert response.status_code == 501
        assert response.json()["error"]["message"] == "Payment methods is not implemented"

    async def test_timeout_persists_pending(self, client, fake_transport, auth_headers, payment_body):
        fake_transport.queue_error(ConnectorTimeout())

        response = await client.post("/payments", json=payment_body, headers=auth_headers)

        assert response.status_code == 504
        attempts = await _load_attempts()
        assert [a.status for a in attempts] == ["pending"]

    async def test_connector_error_response(self, client, fake_transport, auth_headers, payment_body):
        fake_transport.queue(
            422, {"statusCode": 422, "code": "invalid_card", "message": "Invalid card"}
        )
        response = await client.post("/payments", json=payment_body, headers=auth_headers)
        assert response.status_code == 502
        assert response.json()["error"]["connector_code"] == "invalid_card"

    async def test_unknown_payment(self, client, auth_headers):
        response = await client.get("/payments/missing", headers=auth_headers)
        assert response.status_code == 404
        assert response.json()["error"]["error_code"] == "payment_not_found"

    async def test_force_sync(self, client, fake_transport, auth_headers, payment_body):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "preAuth"})
        fake_transport.queue(200, {"status": "DECLINED", "transactionId": 1001, "type": "preAuth"})
        attempt = (await client.post("/payments", json=payment_body, headers=auth_headers)).json()

        response = await client.get(
            f"/payments/{attempt['attempt_id']}",
            params={"force_sync": "true"},
            headers=auth_headers,
        )

        assert response.json()["status"] == "authorization_failed"
        assert fake_transport.requests[-1].url.endswith("card-transactions/1001")

    async def test_force_sync_after_capture(self, client, fake_transport, auth_headers, payment_body):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "preAuth"})
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 2001, "type": "capture"})
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 2001, "type": "capture"})
        attempt = (await client.post("/payments", json=payment_body, headers=auth_headers)).json()
        await client.post(
            f"/payments/{attempt['attempt_id']}/capture",
            json={"amount": 1025, "browser_info": {"ip_address": "203.0.113.7"}},
            headers=auth_headers,
        )

        response = await client.get(
            f"/payments/{attempt['attempt_id']}",
            params={"force_sync": "true"},
            headers=auth_headers,
        )

        assert fake_transport.requests[-1].url.endswith("card-transactions/2001")
        assert response.json()["status"] == "charged"
        assert response.json()["connector_transaction_id"] == "2001"

    async def test_refund_before_capture_marks_refund_failed(
        self, client, fake_transport, auth_headers, payment_body
    ):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "preAuth"})
        attempt = (await client.post("/payments", json=payment_body, headers=auth_headers)).json()

        response = await client.post(
            f"/payments/{attempt['attempt_id']}/refund",
            json={"amount": 500, "refund_id": "refund_1"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        assert response.json()["error"]["error_code"] == "invalid_connector_metadata"
        refunds = await _load_refunds()
        assert [(r.id, r.status, r.error_code) for r in refunds] == [
            ("refund_1", "failure", "invalid_connector_metadata")
        ]
        assert refunds[0].connector_refund_id is None
        assert len(fake_transport.requests) == 1


class TestPayoutsApi:
    """Tests for POST /payouts."""

    async def test_create_then_duplicate(self, client, auth_headers):
        body = {"payout_id": "P1", "amount": 100, "currency": "USD"}

        first = await client.post("/payouts", json=body, headers=auth_headers)
        second = await client.post("/payouts", json=body, headers=auth_headers)

        assert first.status_code == 200
        assert first.json()["status"] == "requires_creation"
        assert second.status_code == 409
        assert second.json()["error"] == {
            "error_code": "duplicate_payout",
            "message": "payout with the given payout_id 'P1' already exists",
            "payout_id": "P1",
        }

    async def test_generated_payout_id(self, client, auth_headers):
        response = await client.post(
            "/payouts", json={"amount": 100, "currency": "USD"}, headers=auth_headers
        )
        assert response.json()["payout_id"].startswith("payout_")

    async def test_merchant_mismatch(self, client, auth_headers):
        response = await client.post(
            "/payouts",
            json={"payout_id": "P2", "merchant_id": "other", "amount": 100, "currency": "USD"},
            headers=auth_headers,
        )
        assert response.status_code == 422
        assert response.json()["error"]["error_code"] == "invalid_data_format"

    async def test_invalid_payout_id(self, client, auth_headers):
        response = await client.post(
            "/payouts",
            json={"payout_id": "bad id!", "amount": 100, "currency": "USD"},
            headers=auth_headers,
        )
        assert response.status_code == 422


class TestStartup:

    async def test_postgres_url_uses_asyncpg(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db/payments")
        urls = []

        def record_engine(url, **kwargs):
            urls.append(url)
            return sa_create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)

        monkeypatch.setattr(session_module, "sa_create_async_engine", record_engine)

        async with lifespan(app):
            assert isinstance(app.state.connector, HelcimConnector)
            assert isinstance(app.state.connector.transport, HttpxTransport)

        assert urls == ["postgresql+asyncpg://u:p@db/payments"]
