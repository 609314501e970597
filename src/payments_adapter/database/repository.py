"""Repository layer for payment attempt, refund and payout persistence."""

import logging
from datetime import datetime
from typing import Optional, Dict, Any, List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..errors import NotFoundError, StorageError, UniqueViolationError
from .models import (
    PaymentAttempt,
    Refund,
    Payout,
    PayoutStatus,
)

logger = logging.getLogger(__name__)


class PaymentAttemptRepository:
    """Repository for PaymentAttempt CRUD operations."""

    def __init__(self, session: AsyncSession):
        """Initialize the repository with a database session.

        Args:
            session: AsyncSession instance for database operations.
        """
        self.session = session

    async def create(
        self,
        merchant_id: str,
        connector: str,
        amount: int,
        currency: str,
        capture_method: str,
        status: str,
        attempt_id: Optional[str] = None,
    ) -> PaymentAttempt:
        """Create a new payment attempt record.

        Args:
            merchant_id: Owning merchant.
            connector: Connector handling the attempt.
            amount: Amount in minor units.
            currency: Three-letter currency code.
            capture_method: automatic or manual.
            status: Initial attempt status.
            attempt_id: Optional explicit id; generated when omitted.

        Returns:
            Created PaymentAttempt instance.
        """
        attempt = PaymentAttempt(
            merchant_id=merchant_id,
            connector=connector,
            amount=amount,
            currency=currency.upper(),
            capture_method=capture_method,
            status=status,
        )
        if attempt_id:
            attempt.id = attempt_id

        self.session.add(attempt)
        await self.session.flush()

        logger.info(f"Created payment attempt {attempt.id} with status {status}")
        return attempt

    async def get_by_id(self, attempt_id: str) -> Optional[PaymentAttempt]:
        result = await self.session.execute(
            select(PaymentAttempt).where(PaymentAttempt.id == attempt_id)
        )
        return result.scalar_one_or_none()

    async def update_from_response(
        self,
        attempt: PaymentAttempt,
        status: str,
        connector_transaction_id: Optional[str] = None,
        connector_metadata: Optional[Dict[str, Any]] = None,
        amount_captured: Optional[int] = None,
    ) -> PaymentAttempt:
        """Apply a canonical connector response to an attempt.

        Metadata is only overwritten when the response carries some, so an
        earlier capture's correlation data survives later syncs.
        """
        attempt.status = status
        attempt.updated_at = datetime.utcnow()
        attempt.error_code = None
        attempt.error_message = None

        if connector_transaction_id:
            attempt.connector_transaction_id = connector_transaction_id
        if connector_metadata is not None:
            attempt.connector_metadata = connector_metadata
        if amount_captured is not None:
            attempt.amount_captured = amount_captured

        await self.session.flush()
        logger.info(f"Updated payment attempt {attempt.id} status to {status}")
        return attempt

    async def record_error(
        self,
        attempt: PaymentAttempt,
        error_code: str,
        error_message: str,
        status: Optional[str] = None,
    ) -> PaymentAttempt:
        """Record a connector error. The status is left unchanged unless given."""
        if status is not None:
            attempt.status = status
        attempt.error_code = error_code
        attempt.error_message = error_message
        attempt.updated_at = datetime.utcnow()
        await self.session.flush()
        logger.warning(f"Payment attempt {attempt.id} failed with {error_code}")
        return attempt


class RefundRepository:
    """Repository for Refund CRUD operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        attempt: PaymentAttempt,
        amount: int,
        refund_id: Optional[str] = None,
    ) -> Refund:
        refund = Refund(
            attempt_id=attempt.id,
            merchant_id=attempt.merchant_id,
            amount=amount,
            currency=attempt.currency,
        )
        if refund_id:
            refund.id = refund_id

        self.session.add(refund)
        await self.session.flush()
        logger.info(f"Created refund {refund.id} for attempt {attempt.id}")
        return refund

    async def get_by_id(self, refund_id: str) -> Optional[Refund]:
        result = await self.session.execute(
            select(Refund).where(Refund.id == refund_id)
        )
        return result.scalar_one_or_none()

    async def list_by_attempt(self, attempt_id: str) -> List[Refund]:
        result = await self.session.execute(
            select(Refund)
            .where(Refund.attempt_id == attempt_id)
            .order_by(Refund.created_at.desc())
        )
        return list(result.scalars().all())

    async def update_status(
        self,
        refund: Refund,
        status: str,
        connector_refund_id: Optional[str] = None,
    ) -> Refund:
        refund.status = status
        refund.error_code = None
        refund.error_message = None
        refund.updated_at = datetime.utcnow()
        if connector_refund_id:
            refund.connector_refund_id = connector_refund_id
        await self.session.flush()
        logger.info(f"Updated refund {refund.id} status to {status}")
        return refund

    async def record_error(
        self,
        refund: Refund,
        error_code: str,
        error_message: str,
        status: Optional[str] = None,
    ) -> Refund:
        """Record a connector error. The status is left unchanged unless given."""
        if status is not None:
            refund.status = status
        refund.error_code = error_code
        refund.error_message = error_message
        refund.updated_at = datetime.utcnow()
        await self.session.flush()
        logger.warning(f"Refund {refund.id} failed with {error_code}")
        return refund


class PayoutRepository:
    """Durable payout storage.

    Translates backend signals into the storage error kinds the payout guard
    understands: ``NotFoundError`` for absence, ``UniqueViolationError`` for a
    (merchant_id, payout_id) conflict on insert and ``StorageError`` for
    everything else.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_payout_by_merchant_id_payout_id(
        self,
        merchant_id: str,
        payout_id: str,
    ) -> Payout:
        """Find a payout by its merchant scoped id.

        Raises:
            NotFoundError: If no payout matches.
            StorageError: On any other backend failure.
        """
        try:
            result = await self.session.execute(
                select(Payout).where(
                    Payout.merchant_id == merchant_id,
                    Payout.payout_id == payout_id,
                )
            )
            return result.scalar_one()
        except NoResultFound as e:
            raise NotFoundError(
                f"Payout {payout_id} not found for merchant {merchant_id}"
            ) from e
        except SQLAlchemyError as e:
            logger.error(f"Database error while finding payout {payout_id}: {e}")
            raise StorageError(f"Failed while finding payout {payout_id}") from e

    async def insert_payout(
        self,
        payout_id: str,
        merchant_id: str,
        amount: int,
        currency: str,
        customer_id: Optional[str] = None,
        connector: Optional[str] = None,
        method_data: Optional[Dict[str, Any]] = None,
    ) -> Payout:
        """Insert a payout.

        Raises:
            UniqueViolationError: If (merchant_id, payout_id) already exists.
            StorageError: On any other backend failure.
        """
        payout = Payout(
            payout_id=payout_id,
            merchant_id=merchant_id,
            customer_id=customer_id,
            amount=amount,
            currency=currency.upper(),
            connector=connector,
            status=PayoutStatus.REQUIRES_CREATION.value,
        )
        payout.method_data = method_data

        self.session.add(payout)
        try:
            await self.session.flush()
        except IntegrityError as e:
            await self.session.rollback()
            raise UniqueViolationError(
                f"Payout {payout_id} already exists for merchant {merchant_id}"
            ) from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Database error while inserting payout {payout_id}: {e}")
            raise StorageError(f"Failed while inserting payout {payout_id}") from e

        logger.info(f"Created payout {payout_id} for merchant {merchant_id}")
        return payout

    async def update_status(
        self,
        payout: Payout,
        status: str,
        connector_payout_id: Optional[str] = None,
    ) -> Payout:
        payout.status = status
        payout.updated_at = datetime.utcnow()
        if connector_payout_id:
            payout.connector_payout_id = connector_payout_id
        try:
            await self.session.flush()
        except SQLAlchemyError as e:
            raise StorageError(f"Failed while updating payout {payout.payout_id}") from e
        logger.info(f"Updated payout {payout.payout_id} status to {status}")
        return payout
