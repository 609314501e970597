"""Payment service layer that runs connector operations and persists their outcome."""

import logging
from typing import Awaitable, Optional, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from .connectors.base import (
    Address,
    AttemptStatus,
    BrowserInformation,
    Card,
    ConnectorAuthType,
    ConnectorBase,
    PaymentsAuthorizeData,
    PaymentsCaptureData,
    PaymentsSyncData,
    RefundsData,
    RefundStatus,
    RouterData,
    SyncRequestType,
)
from .database import (
    PaymentAttempt,
    PaymentAttemptRepository,
    Refund,
    RefundRepository,
)
from .errors import ConnectorError, ConnectorTimeout, PaymentNotFound

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PaymentService:
    """Service class for connector operations with persistence."""

    def __init__(
        self,
        session: AsyncSession,
        connector: ConnectorBase,
        connector_auth_type: ConnectorAuthType,
    ):
        """Initialize the service.

        Args:
            session: AsyncSession instance for database operations.
            connector: Connector adapter that performs the calls.
            connector_auth_type: Credentials resolved for the connector.
        """
        self.session = session
        self.connector = connector
        self.connector_auth_type = connector_auth_type
        self.attempt_repo = PaymentAttemptRepository(session)
        self.refund_repo = RefundRepository(session)

    async def _get_attempt(self, attempt_id: str) -> PaymentAttempt:
        attempt = await self.attempt_repo.get_by_id(attempt_id)
        if attempt is None:
            raise PaymentNotFound(f"Payment attempt {attempt_id} not found")
        return attempt

    async def _call_connector(self, attempt: PaymentAttempt, call: Awaitable[T]) -> T:
        """Await a connector call and record any failure on the attempt.

        A timeout leaves the lifecycle state unresolved (pending) so that the
        caller can sync it; other errors keep the current state.
        """
        try:
            return await call
        except ConnectorTimeout as e:
            await self.attempt_repo.record_error(
                attempt, e.error_code, str(e), status=AttemptStatus.PENDING.value
            )
            raise
        except ConnectorError as e:
            await self.attempt_repo.record_error(attempt, e.error_code, str(e))
            raise

    async def _call_refund_connector(
        self,
        refund: Refund,
        call: Awaitable[T],
        failure_status: Optional[str] = None,
    ) -> T:
        """Await a refund call and record any failure on the refund.

        A timeout leaves the refund status untouched; other errors move it to
        ``failure_status`` when one is given.
        """
        try:
            return await call
        except ConnectorTimeout as e:
            await self.refund_repo.record_error(refund, e.error_code, str(e))
            raise
        except ConnectorError as e:
            await self.refund_repo.record_error(
                refund, e.error_code, str(e), status=failure_status
            )
            raise

    def _router_data(self, merchant_id: str, attempt_id: str, request, billing=None) -> RouterData:
        return RouterData[type(request)](
            merchant_id=merchant_id,
            attempt_id=attempt_id,
            connector_auth_type=self.connector_auth_type,
            request=request,
            billing=billing,
        )

    async def authorize(
        self,
        merchant_id: str,
        request: PaymentsAuthorizeData,
        billing: Optional[Address] = None,
    ) -> PaymentAttempt:
        """Authorize (or purchase, for automatic capture) a payment.

        Returns:
            The persisted PaymentAttempt.
        """
        attempt = await self.attempt_repo.create(
            merchant_id=merchant_id,
            connector=self.connector.name,
            amount=request.amount,
            currency=request.currency,
            capture_method=request.capture_method.value,
            status=AttemptStatus.STARTED.value,
        )
        if isinstance(request.payment_method_data, Card):
            logger.info(
                f"Authorizing attempt {attempt.id} with card "
                f"{request.payment_method_data.masked_number()}"
            )

        router_data = self._router_data(merchant_id, attempt.id, request, billing)
        response = await self._call_connector(attempt, self.connector.authorize(router_data))

        amount_captured = request.amount if response.status == AttemptStatus.CHARGED else None
        return await self.attempt_repo.update_from_response(
            attempt,
            status=response.status.value,
            connector_transaction_id=response.connector_transaction_id,
            connector_metadata=response.connector_metadata,
            amount_captured=amount_captured,
        )

    async def capture(
        self,
        attempt_id: str,
        amount: int,
        browser_info: Optional[BrowserInformation] = None,
    ) -> PaymentAttempt:
        """Capture an authorized attempt.

        A successful capture replaces the attempt's connector transaction id
        with the capture's own id, so later syncs look up the capture. The id
        is also kept in the correlation metadata for refunds.
        """
        attempt = await self._get_attempt(attempt_id)
        request = PaymentsCaptureData(
            amount_to_capture=amount,
            currency=attempt.currency,
            connector_transaction_id=attempt.connector_transaction_id,
            browser_info=browser_info,
        )
        router_data = self._router_data(attempt.merchant_id, attempt.id, request)
        response = await self._call_connector(attempt, self.connector.capture(router_data))

        if response.status != AttemptStatus.CHARGED:
            # The pre-auth id stays so the capture can be retried.
            return await self.attempt_repo.update_from_response(
                attempt,
                status=response.status.value,
                connector_metadata=response.connector_metadata,
            )
        return await self.attempt_repo.update_from_response(
            attempt,
            status=response.status.value,
            connector_transaction_id=response.connector_transaction_id,
            connector_metadata=response.connector_metadata,
            amount_captured=amount,
        )

    async def sync(
        self,
        attempt_id: str,
        sync_type: SyncRequestType = SyncRequestType.SINGLE_PAYMENT_SYNC,
    ) -> PaymentAttempt:
        """Fetch the current state of an attempt from the connector."""
        attempt = await self._get_attempt(attempt_id)
        request = PaymentsSyncData(
            connector_transaction_id=attempt.connector_transaction_id,
            sync_type=sync_type,
        )
        router_data = self._router_data(attempt.merchant_id, attempt.id, request)
        response = await self._call_connector(attempt, self.connector.sync(router_data))
        return await self.attempt_repo.update_from_response(
            attempt,
            status=response.status.value,
            connector_metadata=response.connector_metadata,
        )

    async def refund(
        self,
        attempt_id: str,
        amount: int,
        browser_info: Optional[BrowserInformation] = None,
        refund_id: Optional[str] = None,
    ) -> Refund:
        """Refund a captured attempt using its stored correlation metadata.

        The refund row is persisted before the connector is called. A request
        that cannot be built or is rejected marks it failed with the error.
        """
        attempt = await self._get_attempt(attempt_id)
        refund = await self.refund_repo.create(attempt, amount, refund_id=refund_id)
        request = RefundsData(
            refund_id=refund.id,
            refund_amount=amount,
            currency=attempt.currency,
            connector_transaction_id=attempt.connector_transaction_id,
            connector_metadata=attempt.connector_metadata,
            browser_info=browser_info,
        )
        router_data = self._router_data(attempt.merchant_id, attempt.id, request)
        response = await self._call_refund_connector(
            refund,
            self.connector.refund(router_data),
            failure_status=RefundStatus.FAILURE.value,
        )
        return await self.refund_repo.update_status(
            refund,
            response.refund_status.value,
            connector_refund_id=response.connector_refund_id,
        )

    async def refund_sync(self, refund_id: str) -> Refund:
        refund = await self.refund_repo.get_by_id(refund_id)
        if refund is None:
            raise PaymentNotFound(f"Refund {refund_id} not found")
        attempt = await self._get_attempt(refund.attempt_id)
        request = RefundsData(
            refund_id=refund.id,
            refund_amount=refund.amount,
            currency=refund.currency,
            connector_transaction_id=attempt.connector_transaction_id,
            connector_refund_id=refund.connector_refund_id,
        )
        router_data = self._router_data(attempt.merchant_id, attempt.id, request)
        response = await self._call_refund_connector(
            refund, self.connector.refund_sync(router_data)
        )
        return await self.refund_repo.update_status(refund, response.refund_status.value)

    async def get_attempt(self, attempt_id: str) -> PaymentAttempt:
        return await self._get_attempt(attempt_id)
