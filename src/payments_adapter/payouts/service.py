"""Payout creation: guard, insert, then hand off to the connector."""

import logging
from typing import Optional

from ..database.models import PayoutStatus
from ..errors import DuplicatePayout, InternalServerError, StorageError, UniqueViolationError
from .models import (
    MerchantAccount,
    PaymentMethodLocker,
    PayoutConnector,
    PayoutCreateRequest,
    PayoutResponse,
)
from .validator import PayoutStorage, validate_create_request

logger = logging.getLogger(__name__)


class PayoutService:
    """Creates payouts at most once per (merchant_id, payout_id)."""

    def __init__(
        self,
        storage: PayoutStorage,
        connector: Optional[PayoutConnector] = None,
        locker: Optional[PaymentMethodLocker] = None,
    ):
        """Initialize the service with its collaborators.

        Args:
            storage: Durable payout storage.
            connector: Connector that executes the payout. When None the
                payout is recorded and left in requires_creation.
            locker: Vault used to resolve payout tokens.
        """
        self.storage = storage
        self.connector = connector
        self.locker = locker

    async def create_payout(
        self,
        merchant_account: MerchantAccount,
        req: PayoutCreateRequest,
    ) -> PayoutResponse:
        """Create a payout.

        Raises:
            DuplicatePayout: If the payout already exists, whether found by the
                pre-check or by the storage unique constraint. The connector is
                not called in either case.
        """
        payout_id, method_data = await validate_create_request(
            self.storage, merchant_account, req, self.locker
        )
        merchant_id = merchant_account.merchant_id

        try:
            payout = await self.storage.insert_payout(
                payout_id=payout_id,
                merchant_id=merchant_id,
                amount=req.amount,
                currency=req.currency,
                customer_id=req.customer_id,
                connector=self.connector.name if self.connector else req.connector,
                method_data=method_data.model_dump(mode="json") if method_data else None,
            )
        except UniqueViolationError as e:
            logger.info(f"Payout {payout_id} lost the creation race for merchant {merchant_id}")
            raise DuplicatePayout(payout_id) from e
        except StorageError as e:
            raise InternalServerError().attach_printable(
                f"Failed while inserting payout {payout_id}"
            ) from e

        if self.connector is not None:
            result = await self.connector.create_payout(
                payout_id=payout_id,
                amount=req.amount,
                currency=req.currency,
                method_data=method_data,
            )
            payout = await self.storage.update_status(
                payout,
                result.status.value,
                connector_payout_id=result.connector_payout_id,
            )

        return PayoutResponse(
            payout_id=payout.payout_id,
            merchant_id=payout.merchant_id,
            status=PayoutStatus(payout.status),
            amount=payout.amount,
            currency=payout.currency,
            connector_payout_id=payout.connector_payout_id,
        )
