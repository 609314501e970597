"""Payment connector adapters."""

from .base import (
    ConnectorBase,
    ConnectorRouterData,
    RouterData,
    AttemptStatus,
    RefundStatus,
    CaptureMethod,
    SyncRequestType,
    ConnectorAuthType,
    HeaderKey,
    BodyKey,
    SignatureKey,
    NoKey,
    PaymentMethodData,
    Card,
    Wallet,
    BankTransfer,
    Address,
    AddressDetails,
    BrowserInformation,
    PaymentsAuthorizeData,
    PaymentsCaptureData,
    PaymentsSyncData,
    RefundsData,
    PaymentsResponseData,
    RefundsResponseData,
    ErrorResponse,
)
from .helcim import HelcimConnector

__all__ = [
    # Base classes
    "ConnectorBase",
    "ConnectorRouterData",
    "RouterData",
    # Lifecycle
    "AttemptStatus",
    "RefundStatus",
    "CaptureMethod",
    "SyncRequestType",
    # Credentials
    "ConnectorAuthType",
    "HeaderKey",
    "BodyKey",
    "SignatureKey",
    "NoKey",
    # Payment method data
    "PaymentMethodData",
    "Card",
    "Wallet",
    "BankTransfer",
    "Address",
    "AddressDetails",
    "BrowserInformation",
    # Requests and responses
    "PaymentsAuthorizeData",
    "PaymentsCaptureData",
    "PaymentsSyncData",
    "RefundsData",
    "PaymentsResponseData",
    "RefundsResponseData",
    "ErrorResponse",
    # Connectors
    "HelcimConnector",
]
