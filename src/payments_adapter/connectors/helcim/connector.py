import logging
from typing import Any, Dict

from ...amounts import CurrencyUnit
from ...errors import ConnectorErrorResponse, ResponseDeserializationFailed
from ...transport import Transport, WireRequest, WireResponse
from ..base import (
    ConnectorBase,
    ConnectorRouterData,
    PaymentsAuthorizeData,
    PaymentsCaptureData,
    PaymentsResponseData,
    PaymentsSyncData,
    RefundsData,
    RefundsResponseData,
    RouterData,
)
from .transformers import (
    HelcimAuthType,
    HelcimCaptureRequest,
    HelcimErrorResponse,
    HelcimPaymentsRequest,
    HelcimPaymentsResponse,
    HelcimRefundRequest,
    HelcimRefundResponse,
    parse_transaction_id,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.helcim.com/v2/"


class HelcimConnector(ConnectorBase):
    """
    Helcim card connector. Supports purchase, pre-auth, capture, refund and
    single-payment sync. Each operation is split into a pure ``build_*``
    step, the transport call and a pure ``handle_*`` step so the
    transformations can be exercised without a network.
    """

    name = "helcim"
    currency_unit = CurrencyUnit.BASE

    def __init__(self, transport: Transport, base_url: str = DEFAULT_BASE_URL):
        self.transport = transport
        self.base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        logger.info(f"HelcimConnector initialized with base url {self.base_url}")

    # Headers and errors

    def build_headers(self, router_data: RouterData, idempotency_key: str) -> Dict[str, str]:
        auth = HelcimAuthType.from_auth_type(router_data.connector_auth_type)
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "api-token": auth.api_key.get_secret_value(),
            "idempotency-key": idempotency_key,
        }

    def build_error_response(self, response: WireResponse) -> ConnectorErrorResponse:
        try:
            error = HelcimErrorResponse.parse(response.json()).to_error_response()
        except ResponseDeserializationFailed as e:
            e.attach_printable(f"while reading Helcim error body (status {response.status_code})")
            raise
        logger.warning(
            f"Helcim returned {response.status_code}: {error.code} {error.message}"
        )
        return ConnectorErrorResponse(
            http_status=response.status_code,
            code=error.code,
            message=error.message,
            reason=error.reason,
        )

    async def _execute(self, request: WireRequest) -> WireResponse:
        response = await self.transport.send(request)
        if not response.is_success:
            raise self.build_error_response(response)
        return response

    # Authorize

    def build_authorize_request(
        self, router_data: RouterData[PaymentsAuthorizeData]
    ) -> WireRequest:
        request = router_data.request
        item = ConnectorRouterData.build(
            self.currency_unit, request.currency, request.amount, router_data
        )
        body = HelcimPaymentsRequest.from_router_data(item)
        endpoint = "payment/purchase" if request.is_auto_capture() else "payment/preauth"
        return WireRequest(
            method="POST",
            url=f"{self.base_url}{endpoint}",
            headers=self.build_headers(router_data, router_data.attempt_id),
            json=body.to_wire(),
        )

    def handle_authorize_response(self, response: WireResponse) -> PaymentsResponseData:
        return HelcimPaymentsResponse.parse(response.json()).to_authorize_response()

    async def authorize(
        self, router_data: RouterData[PaymentsAuthorizeData]
    ) -> PaymentsResponseData:
        wire_request = self.build_authorize_request(router_data)
        logger.info(f"Authorizing attempt {router_data.attempt_id} via Helcim")
        response = await self._execute(wire_request)
        return self.handle_authorize_response(response)

    # Capture

    def build_capture_request(
        self, router_data: RouterData[PaymentsCaptureData]
    ) -> WireRequest:
        request = router_data.request
        item = ConnectorRouterData.build(
            self.currency_unit, request.currency, request.amount_to_capture, router_data
        )
        body = HelcimCaptureRequest.from_router_data(item)
        return WireRequest(
            method="POST",
            url=f"{self.base_url}payment/capture",
            headers=self.build_headers(router_data, f"{router_data.attempt_id}_capture"),
            json=body.to_wire(),
        )

    def handle_capture_response(self, response: WireResponse) -> PaymentsResponseData:
        return HelcimPaymentsResponse.parse(response.json()).to_capture_response()

    async def capture(
        self, router_data: RouterData[PaymentsCaptureData]
    ) -> PaymentsResponseData:
        wire_request = self.build_capture_request(router_data)
        logger.info(f"Capturing attempt {router_data.attempt_id} via Helcim")
        response = await self._execute(wire_request)
        return self.handle_capture_response(response)

    # Sync

    def build_sync_request(self, router_data: RouterData[PaymentsSyncData]) -> WireRequest:
        transaction_id = parse_transaction_id(
            router_data.request.connector_transaction_id, "connector_transaction_id"
        )
        return WireRequest(
            method="GET",
            url=f"{self.base_url}card-transactions/{transaction_id}",
            headers=self.build_headers(router_data, f"{router_data.attempt_id}_sync"),
        )

    def handle_sync_response(
        self, router_data: RouterData[PaymentsSyncData], response: WireResponse
    ) -> PaymentsResponseData:
        return HelcimPaymentsResponse.parse(response.json()).to_sync_response(
            router_data.request
        )

    async def sync(self, router_data: RouterData[PaymentsSyncData]) -> PaymentsResponseData:
        wire_request = self.build_sync_request(router_data)
        response = await self._execute(wire_request)
        return self.handle_sync_response(router_data, response)

    # Refunds

    def build_refund_request(self, router_data: RouterData[RefundsData]) -> WireRequest:
        request = router_data.request
        item = ConnectorRouterData.build(
            self.currency_unit, request.currency, request.refund_amount, router_data
        )
        body = HelcimRefundRequest.from_router_data(item)
        return WireRequest(
            method="POST",
            url=f"{self.base_url}payment/refund",
            headers=self.build_headers(router_data, request.refund_id),
            json=body.to_wire(),
        )

    def handle_refund_response(self, response: WireResponse) -> RefundsResponseData:
        return HelcimRefundResponse.parse(response.json()).to_refunds_response()

    async def refund(self, router_data: RouterData[RefundsData]) -> RefundsResponseData:
        wire_request = self.build_refund_request(router_data)
        logger.info(
            f"Refunding {router_data.request.refund_amount} for attempt "
            f"{router_data.attempt_id} via Helcim"
        )
        response = await self._execute(wire_request)
        return self.handle_refund_response(response)

    def build_refund_sync_request(self, router_data: RouterData[RefundsData]) -> WireRequest:
        refund_id = parse_transaction_id(
            router_data.request.connector_refund_id, "connector_refund_id"
        )
        return WireRequest(
            method="GET",
            url=f"{self.base_url}card-transactions/{refund_id}",
            headers=self.build_headers(router_data, f"{router_data.request.refund_id}_sync"),
        )

    async def refund_sync(self, router_data: RouterData[RefundsData]) -> RefundsResponseData:
        wire_request = self.build_refund_sync_request(router_data)
        response = await self._execute(wire_request)
        return self.handle_refund_response(response)

    def health_check(self) -> Dict[str, Any]:
        return {"ok": True, "connector": self.name, "base_url": self.base_url}
