"""Shared test fixtures and configuration."""

import json
import os
from typing import Any, Dict, List, Optional

import pytest
from pydantic import SecretStr

# Set up test environment variables before importing modules
os.environ.setdefault("API_KEY", "test_api_key_12345")
os.environ.setdefault("MERCHANT_ID", "merchant_123")
os.environ.setdefault("HELCIM_API_KEY", "helcim_test_token")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

from payments_adapter.connectors.base import (  # noqa: E402
    Address,
    AddressDetails,
    BrowserInformation,
    Card,
    CaptureMethod,
    HeaderKey,
    PaymentsAuthorizeData,
    PaymentsCaptureData,
    PaymentsSyncData,
    RefundsData,
    RouterData,
)
from payments_adapter.database import Base, create_async_engine, get_async_session_factory  # noqa: E402
from payments_adapter.errors import NotFoundError, StorageError, UniqueViolationError  # noqa: E402
from payments_adapter.transport import WireRequest, WireResponse  # noqa: E402


class FakeTransport:
    """Transport that records requests and replays queued responses or errors."""

    def __init__(self):
        self.requests: List[WireRequest] = []
        self._responses: List[Any] = []

    def queue(self, status_code: int, payload: Any) -> None:
        body = payload if isinstance(payload, bytes) else json.dumps(payload).encode()
        self._responses.append(WireResponse(status_code=status_code, body=body))

    def queue_error(self, error: Exception) -> None:
        self._responses.append(error)

    async def send(self, request: WireRequest) -> WireResponse:
        self.requests.append(request)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


class StoredPayout:
    def __init__(self, **fields):
        self.connector_payout_id = None
        self.__dict__.update(fields)


class InMemoryPayoutStorage:
    """Payout storage keyed by (merchant_id, payout_id)."""

    def __init__(self):
        self.payouts: Dict[tuple, StoredPayout] = {}
        self.find_error: Optional[StorageError] = None
        self.insert_error: Optional[StorageError] = None

    async def find_payout_by_merchant_id_payout_id(self, merchant_id: str, payout_id: str):
        if self.find_error is not None:
            raise self.find_error
        try:
            return self.payouts[(merchant_id, payout_id)]
        except KeyError:
            raise NotFoundError(f"Payout {payout_id} not found")

    async def insert_payout(
        self,
        payout_id: str,
        merchant_id: str,
        amount: int,
        currency: str,
        customer_id: Optional[str] = None,
        connector: Optional[str] = None,
        method_data: Optional[dict] = None,
    ):
        if self.insert_error is not None:
            raise self.insert_error
        key = (merchant_id, payout_id)
        if key in self.payouts:
            raise UniqueViolationError(f"Payout {payout_id} already exists")
        payout = StoredPayout(
            payout_id=payout_id,
            merchant_id=merchant_id,
            amount=amount,
            currency=currency.upper(),
            customer_id=customer_id,
            connector=connector,
            method_data=method_data,
            status="requires_creation",
        )
        self.payouts[key] = payout
        return payout

    async def update_status(self, payout, status: str, connector_payout_id: Optional[str] = None):
        payout.status = status
        if connector_payout_id:
            payout.connector_payout_id = connector_payout_id
        return payout


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def payout_storage():
    return InMemoryPayoutStorage()


@pytest.fixture
def auth_type():
    return HeaderKey(api_key=SecretStr("helcim_test_token"))


@pytest.fixture
def card():
    return Card(
        card_number=SecretStr("4242424242424242"),
        card_exp_month="3",
        card_exp_year="2030",
        card_cvc=SecretStr("123"),
        card_holder_name="Jane Doe",
    )


@pytest.fixture
def billing():
    return Address(
        address=AddressDetails(
            first_name="Jane",
            last_name="Doe",
            line1="1 Main St",
            city="Calgary",
            zip="T2P 1J9",
            country="CA",
        ),
        email="jane@example.com",
    )


@pytest.fixture
def browser_info():
    return BrowserInformation(ip_address="203.0.113.7", user_agent="pytest")


@pytest.fixture
def authorize_router_data(auth_type, card, billing, browser_info):
    """Manual capture authorization for 10.25 USD."""
    def _build(**overrides) -> RouterData[PaymentsAuthorizeData]:
        request_fields = {
            "amount": 1025,
            "currency": "USD",
            "payment_method_data": card,
            "capture_method": CaptureMethod.MANUAL,
            "browser_info": browser_info,
        }
        request_fields.update(overrides.pop("request", {}))
        fields = {
            "merchant_id": "merchant_123",
            "attempt_id": "attempt_1",
            "connector_auth_type": auth_type,
            "request": PaymentsAuthorizeData(**request_fields),
            "billing": billing,
        }
        fields.update(overrides)
        return RouterData[PaymentsAuthorizeData](**fields)
    return _build


@pytest.fixture
def capture_router_data(auth_type, browser_info):
    def _build(connector_transaction_id: Optional[str] = "1001", **request_overrides):
        request_fields = {
            "amount_to_capture": 1025,
            "currency": "USD",
            "connector_transaction_id": connector_transaction_id,
            "browser_info": browser_info,
        }
        request_fields.update(request_overrides)
        return RouterData[PaymentsCaptureData](
            merchant_id="merchant_123",
            attempt_id="attempt_1",
            connector_auth_type=auth_type,
            request=PaymentsCaptureData(**request_fields),
        )
    return _build


@pytest.fixture
def sync_router_data(auth_type):
    def _build(**request_fields):
        request_fields.setdefault("connector_transaction_id", "1001")
        return RouterData[PaymentsSyncData](
            merchant_id="merchant_123",
            attempt_id="attempt_1",
            connector_auth_type=auth_type,
            request=PaymentsSyncData(**request_fields),
        )
    return _build


@pytest.fixture
def refund_router_data(auth_type, browser_info):
    def _build(connector_metadata=None, **request_overrides):
        request_fields = {
            "refund_id": "refund_1",
            "refund_amount": 500,
            "currency": "USD",
            "connector_transaction_id": "1001",
            "connector_metadata": connector_metadata,
            "browser_info": browser_info,
        }
        request_fields.update(request_overrides)
        return RouterData[RefundsData](
            merchant_id="merchant_123",
            attempt_id="attempt_1",
            connector_auth_type=auth_type,
            request=RefundsData(**request_fields),
        )
    return _build


# Database fixtures for integration tests
@pytest.fixture
async def db_engine():
    """Create an in-memory SQLite database for testing."""
    engine = create_async_engine(
        database_url="sqlite+aiosqlite:///:memory:",
        echo=False
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    """Create a database session for testing."""
    session_factory = get_async_session_factory(db_engine)
    async with session_factory() as session:
        yield session
