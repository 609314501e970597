"""Tests for the Helcim connector against a fake transport."""

import json

import pytest

from payments_adapter.connectors.base import AttemptStatus, CaptureMethod, NoKey, RefundStatus
from payments_adapter.connectors.helcim import DEFAULT_BASE_URL, HelcimConnector, HelcimMetaData
from payments_adapter.errors import (
    ConnectorErrorResponse,
    ConnectorNotImplemented,
    ConnectorTimeout,
    FailedToObtainAuthType,
    MissingRequiredField,
    ResponseDeserializationFailed,
)


@pytest.fixture
def connector(fake_transport):
    return HelcimConnector(fake_transport, base_url="https://helcim.test/v2")


class TestHelcimConnectorRequests:
    """Tests for outbound request construction."""

    def test_default_base_url(self, fake_transport):
        assert HelcimConnector(fake_transport).base_url == DEFAULT_BASE_URL

    def test_headers(self, connector, authorize_router_data):
        headers = connector.build_headers(authorize_router_data(), "idem_1")
        assert headers["api-token"] == "helcim_test_token"
        assert headers["idempotency-key"] == "idem_1"
        assert headers["Content-Type"] == "application/json"

    def test_headers_require_header_key(self, connector, authorize_router_data):
        with pytest.raises(FailedToObtainAuthType):
            connector.build_headers(authorize_router_data(connector_auth_type=NoKey()), "idem_1")

    def test_manual_capture_uses_preauth(self, connector, authorize_router_data):
        request = connector.build_authorize_request(authorize_router_data())
        assert request.method == "POST"
        assert request.url == "https://helcim.test/v2/payment/preauth"

    def test_automatic_capture_uses_purchase(self, connector, authorize_router_data):
        router_data = authorize_router_data(request={"capture_method": CaptureMethod.AUTOMATIC})
        request = connector.build_authorize_request(router_data)
        assert request.url == "https://helcim.test/v2/payment/purchase"

    def test_sync_request(self, connector, sync_router_data):
        request = connector.build_sync_request(sync_router_data())
        assert request.method == "GET"
        assert request.url == "https://helcim.test/v2/card-transactions/1001"
        assert request.json is None


class TestHelcimConnectorOperations:
    """Tests for full operations through the transport."""

    async def test_authorize(self, connector, fake_transport, authorize_router_data):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "preAuth"})

        response = await connector.authorize(authorize_router_data())

        assert response.status == AttemptStatus.AUTHORIZED
        assert response.connector_transaction_id == "1001"
        assert fake_transport.requests[0].json["cardData"]["cardExpiry"] == "0330"

    async def test_authorize_validation_error_sends_nothing(
        self, connector, fake_transport, authorize_router_data
    ):
        with pytest.raises(MissingRequiredField):
            await connector.authorize(authorize_router_data(billing=None))
        assert fake_transport.requests == []

    async def test_capture_then_refund(
        self, connector, fake_transport, capture_router_data, refund_router_data
    ):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 2001, "type": "capture"})
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 3001, "type": "refund"})

        captured = await connector.capture(capture_router_data("1001"))
        refunded = await connector.refund(
            refund_router_data(connector_metadata=captured.connector_metadata)
        )

        assert captured.status == AttemptStatus.CHARGED
        assert fake_transport.requests[0].json["preAuthTransactionId"] == 1001
        assert fake_transport.requests[1].json["originalTransactionId"] == 2001
        assert refunded.refund_status == RefundStatus.SUCCESS
        assert refunded.connector_refund_id == "3001"

    async def test_refund_sync(self, connector, fake_transport, refund_router_data):
        fake_transport.queue(200, {"status": "DECLINED", "transactionId": 3001, "type": "refund"})

        result = await connector.refund_sync(refund_router_data(connector_refund_id="3001"))

        assert result.refund_status == RefundStatus.FAILURE
        assert fake_transport.requests[0].url.endswith("card-transactions/3001")

    async def test_multiple_capture_sync(self, connector, fake_transport, sync_router_data):
        fake_transport.queue(200, {"status": "APPROVED", "transactionId": 1001, "type": "capture"})
        with pytest.raises(ConnectorNotImplemented):
            await connector.sync(sync_router_data(sync_type="multiple_capture_sync"))

    async def test_error_response(self, connector, fake_transport, authorize_router_data):
        fake_transport.queue(
            400,
            {"statusCode": 400, "code": "card_declined", "message": "Card declined", "reason": "nsf"},
        )

        with pytest.raises(ConnectorErrorResponse) as exc_info:
            await connector.authorize(authorize_router_data())

        assert exc_info.value.http_status == 400
        assert exc_info.value.code == "card_declined"
        assert exc_info.value.reason == "nsf"

    async def test_unparseable_error_body(self, connector, fake_transport, authorize_router_data):
        fake_transport.queue(500, b"<html>oops</html>")
        with pytest.raises(ResponseDeserializationFailed):
            await connector.authorize(authorize_router_data())

    async def test_timeout_propagates(self, connector, fake_transport, authorize_router_data):
        fake_transport.queue_error(ConnectorTimeout())
        with pytest.raises(ConnectorTimeout):
            await connector.authorize(authorize_router_data())

    async def test_void_not_implemented(self, connector, sync_router_data):
        with pytest.raises(ConnectorNotImplemented):
            await connector.void(sync_router_data())

    def test_health_check(self, connector):
        assert connector.health_check() == {
            "ok": True,
            "connector": "helcim",
            "base_url": "https://helcim.test/v2/",
        }


def test_metadata_survives_json_storage():
    envelope = HelcimMetaData(capture_id=7).to_envelope()
    assert HelcimMetaData.from_envelope(json.loads(json.dumps(envelope))).capture_id == 7
