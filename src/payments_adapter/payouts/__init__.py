"""Payout creation with duplicate protection."""

from .models import (
    MerchantAccount,
    PayoutBank,
    PayoutCard,
    PayoutConnector,
    PayoutConnectorResponse,
    PayoutCreateRequest,
    PayoutMethodData,
    PayoutResponse,
    PaymentMethodLocker,
)
from .service import PayoutService
from .validator import (
    PayoutStorage,
    get_or_generate_id,
    validate_create_request,
    validate_uniqueness_of_payout_id_against_merchant_id,
)

__all__ = [
    "MerchantAccount",
    "PayoutBank",
    "PayoutCard",
    "PayoutConnector",
    "PayoutConnectorResponse",
    "PayoutCreateRequest",
    "PayoutMethodData",
    "PayoutResponse",
    "PaymentMethodLocker",
    "PayoutService",
    "PayoutStorage",
    "get_or_generate_id",
    "validate_create_request",
    "validate_uniqueness_of_payout_id_against_merchant_id",
]
