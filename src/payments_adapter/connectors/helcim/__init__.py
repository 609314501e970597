"""Helcim card connector."""

from .connector import HelcimConnector, DEFAULT_BASE_URL
from .transformers import (
    HelcimAuthType,
    HelcimMetaData,
    HelcimPaymentStatus,
    HelcimTransactionType,
    HelcimRefundTransactionType,
    PAYMENT_STATUS_MATRIX,
    REFUND_STATUS_MATRIX,
)

__all__ = [
    "HelcimConnector",
    "DEFAULT_BASE_URL",
    "HelcimAuthType",
    "HelcimMetaData",
    "HelcimPaymentStatus",
    "HelcimTransactionType",
    "HelcimRefundTransactionType",
    "PAYMENT_STATUS_MATRIX",
    "REFUND_STATUS_MATRIX",
]
