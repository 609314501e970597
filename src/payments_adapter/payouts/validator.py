"""Validation of payout create requests.

Checks, in order:
- the merchant_id in the request (if any) is the authenticated merchant
- the payout token (if any) resolves to payout method data
- the payout_id (supplied or generated) is unique for the merchant

The uniqueness check is a read before the insert, so two concurrent requests
can both pass it. The storage layer's unique constraint on
(merchant_id, payout_id) closes that window; ``PayoutService`` maps its
violation to the same ``DuplicatePayout`` error.
"""

import logging
import re
import uuid
from typing import Any, Optional, Protocol, Tuple

from pydantic import TypeAdapter, ValidationError

from ..errors import (
    DuplicatePayout,
    InternalServerError,
    InvalidDataFormat,
    NotFoundError,
    PayoutNotFound,
    StorageError,
)
from .models import (
    MerchantAccount,
    PaymentMethodLocker,
    PayoutCreateRequest,
    PayoutMethodData,
)

logger = logging.getLogger(__name__)

MAX_ID_LENGTH = 64
ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

_payout_method_data_adapter = TypeAdapter(PayoutMethodData)


class PayoutStorage(Protocol):
    """Storage capability consumed by the guard and the payout service."""

    async def find_payout_by_merchant_id_payout_id(
        self, merchant_id: str, payout_id: str
    ) -> Any:
        """Return the payout or raise NotFoundError / StorageError."""
        ...

    async def insert_payout(
        self,
        payout_id: str,
        merchant_id: str,
        amount: int,
        currency: str,
        customer_id: Optional[str] = None,
        connector: Optional[str] = None,
        method_data: Optional[dict] = None,
    ) -> Any:
        """Insert a payout or raise UniqueViolationError / StorageError."""
        ...

    async def update_status(
        self, payout: Any, status: str, connector_payout_id: Optional[str] = None
    ) -> Any:
        ...


def get_or_generate_id(key: str, provided: Optional[str], prefix: str) -> str:
    """Validate a caller supplied id or generate a fresh one."""
    if provided is None:
        return f"{prefix}_{uuid.uuid4().hex}"
    if not provided or len(provided) > MAX_ID_LENGTH or not ID_PATTERN.match(provided):
        raise InvalidDataFormat(
            field_name=key,
            expected_format=(
                f"at most {MAX_ID_LENGTH} characters of letters, digits, '_' or '-'"
            ),
        )
    return provided


async def validate_uniqueness_of_payout_id_against_merchant_id(
    storage: PayoutStorage,
    payout_id: str,
    merchant_id: str,
) -> Optional[Any]:
    """Return the existing payout for (merchant_id, payout_id), or None.

    Raises:
        InternalServerError: If the storage lookup fails for any reason other
            than the payout not existing.
    """
    try:
        payout = await storage.find_payout_by_merchant_id_payout_id(merchant_id, payout_id)
    except NotFoundError:
        return None
    except StorageError as e:
        raise InternalServerError().attach_printable(
            "Failed while finding payout, database error"
        ) from e

    logger.debug(f"Found payout {payout.payout_id} for merchant {merchant_id}")
    if payout.payout_id == payout_id:
        return payout
    return None


async def _fetch_payout_method_data(
    locker: Optional[PaymentMethodLocker],
    customer_id: str,
    merchant_id: str,
    payout_token: str,
) -> PayoutMethodData:
    if locker is None:
        raise InternalServerError().attach_printable(
            "payout_token supplied but no payment method locker is configured"
        )
    try:
        raw = await locker.get_payment_method(customer_id, merchant_id, payout_token)
    except StorageError as e:
        raise PayoutNotFound().attach_printable(
            "Failed to fetch payout method details from locker"
        ) from e
    try:
        return _payout_method_data_adapter.validate_json(raw)
    except ValidationError as e:
        raise InternalServerError().attach_printable(
            "Failed to parse payout method data from locker"
        ) from e


async def validate_create_request(
    storage: PayoutStorage,
    merchant_account: MerchantAccount,
    req: PayoutCreateRequest,
    locker: Optional[PaymentMethodLocker] = None,
) -> Tuple[str, Optional[PayoutMethodData]]:
    """Validate a payout create request.

    Returns:
        Tuple of (payout_id, payout_method_data).

    Raises:
        InvalidDataFormat: merchant_id mismatch or malformed payout_id.
        PayoutNotFound: payout_token does not resolve.
        DuplicatePayout: payout_id already exists for the merchant.
        InternalServerError: storage or locker failure.
    """
    merchant_id = merchant_account.merchant_id

    # Merchant ID
    if req.merchant_id is not None and req.merchant_id != merchant_id:
        raise InvalidDataFormat(
            field_name="merchant_id",
            expected_format="merchant_id from merchant account",
        ).attach_printable("invalid merchant_id in request")

    # Payout token
    payout_method_data = req.payout_method_data
    if req.payout_token is not None:
        payout_method_data = await _fetch_payout_method_data(
            locker,
            req.customer_id or "",
            merchant_id,
            req.payout_token,
        )

    # Payout ID
    payout_id = get_or_generate_id("payout_id", req.payout_id, "payout")
    try:
        existing = await validate_uniqueness_of_payout_id_against_merchant_id(
            storage, payout_id, merchant_id
        )
    except InternalServerError as e:
        raise e.attach_printable(
            f"Unique violation while checking payout_id: {payout_id} "
            f"against merchant_id: {merchant_id}"
        )

    if existing is not None:
        logger.info(f"Rejecting duplicate payout {payout_id} for merchant {merchant_id}")
        raise DuplicatePayout(payout_id)

    return payout_id, payout_method_data
