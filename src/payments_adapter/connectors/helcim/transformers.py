"""Canonical <-> Helcim wire transformations."""

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Annotated, Any, ClassVar, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, SecretStr, ValidationError

from ...errors import (
    ConnectorNotImplemented,
    FailedToObtainAuthType,
    RequestEncodingFailed,
    ResponseDeserializationFailed,
)
from ...metadata import ConnectorMetadata, to_connector_meta
from ...status_matrix import StatusMatrix
from ..base import (
    AttemptStatus,
    Card,
    ConnectorAuthType,
    ConnectorRouterData,
    ErrorResponse,
    HeaderKey,
    PaymentsAuthorizeData,
    PaymentsCaptureData,
    PaymentsResponseData,
    PaymentsSyncData,
    RefundsData,
    RefundsResponseData,
    RefundStatus,
    RouterData,
    SyncRequestType,
    get_browser_info,
)

logger = logging.getLogger(__name__)

# Helcim renders card expiry as MMYY.
CARD_EXPIRY_DELIMITER = ""


# Secrets stay masked in repr and logs and are only revealed on the wire.
WireSecret = Annotated[
    SecretStr,
    PlainSerializer(lambda v: v.get_secret_value(), return_type=str, when_used="json"),
]
WireAmount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class _WireModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def parse_transaction_id(value: Optional[str], field_name: str) -> int:
    """Helcim transaction ids are unsigned integers."""
    if value is None or not value.isdigit():
        raise RequestEncodingFailed(
            f"{field_name} must be a numeric Helcim transaction id, got {value!r}"
        )
    return int(value)


# Auth

@dataclass(frozen=True)
class HelcimAuthType:
    api_key: SecretStr

    @classmethod
    def from_auth_type(cls, auth_type: ConnectorAuthType) -> "HelcimAuthType":
        if isinstance(auth_type, HeaderKey):
            return cls(api_key=auth_type.api_key)
        raise FailedToObtainAuthType()


# Requests

class HelcimCard(_WireModel):
    card_number: WireSecret = Field(alias="cardNumber")
    card_expiry: WireSecret = Field(alias="cardExpiry")
    card_cvv: WireSecret = Field(alias="cardCVV")


class HelcimBillingAddress(_WireModel):
    name: WireSecret
    street1: WireSecret
    postal_code: WireSecret = Field(alias="postalCode")
    street2: Optional[WireSecret] = None
    city: Optional[str] = None
    email: Optional[str] = None


class HelcimPaymentsRequest(_WireModel):
    amount: WireAmount
    currency: str
    ip_address: WireSecret = Field(alias="ipAddress")
    card_data: HelcimCard = Field(alias="cardData")
    billing_address: HelcimBillingAddress = Field(alias="billingAddress")
    ecommerce: Optional[bool] = None

    @classmethod
    def from_router_data(
        cls, item: ConnectorRouterData[RouterData[PaymentsAuthorizeData]]
    ) -> "HelcimPaymentsRequest":
        router_data = item.router_data
        request = router_data.request
        payment_method = request.payment_method_data

        if not isinstance(payment_method, Card):
            raise ConnectorNotImplemented("Payment methods")

        card_data = HelcimCard(
            card_number=payment_method.card_number,
            card_expiry=payment_method.get_expiry_month_year_2_digit_with_delimiter(
                CARD_EXPIRY_DELIMITER
            ),
            card_cvv=payment_method.card_cvc,
        )

        address = router_data.get_billing_address()
        billing_address = HelcimBillingAddress(
            name=SecretStr(address.get_full_name()),
            street1=SecretStr(address.get_line1()),
            postal_code=SecretStr(address.get_zip()),
            street2=SecretStr(address.line2) if address.line2 else None,
            city=address.city,
            email=request.email or (router_data.billing.email if router_data.billing else None),
        )

        ip_address = get_browser_info(request.browser_info).get_ip_address()

        return cls(
            amount=item.amount,
            currency=request.currency.upper(),
            ip_address=ip_address,
            card_data=card_data,
            billing_address=billing_address,
        )


class HelcimCaptureRequest(_WireModel):
    pre_auth_transaction_id: int = Field(alias="preAuthTransactionId")
    amount: WireAmount
    ip_address: WireSecret = Field(alias="ipAddress")
    ecommerce: Optional[bool] = None

    @classmethod
    def from_router_data(
        cls, item: ConnectorRouterData[RouterData[PaymentsCaptureData]]
    ) -> "HelcimCaptureRequest":
        request = item.router_data.request
        ip_address = get_browser_info(request.browser_info).get_ip_address()
        return cls(
            pre_auth_transaction_id=parse_transaction_id(
                request.connector_transaction_id, "connector_transaction_id"
            ),
            amount=item.amount,
            ip_address=ip_address,
        )


class HelcimMetaData(ConnectorMetadata):
    """Carries the capture's transaction id forward to refunds."""

    connector: ClassVar[str] = "helcim"
    version: ClassVar[int] = 1

    capture_id: int = Field(alias="captureId", ge=0)


class HelcimRefundRequest(_WireModel):
    amount: WireAmount
    original_transaction_id: int = Field(alias="originalTransactionId")
    ip_address: WireSecret = Field(alias="ipAddress")
    ecommerce: Optional[bool] = None

    @classmethod
    def from_router_data(
        cls, item: ConnectorRouterData[RouterData[RefundsData]]
    ) -> "HelcimRefundRequest":
        request = item.router_data.request
        try:
            meta = to_connector_meta(request.connector_metadata, HelcimMetaData)
        except RequestEncodingFailed as e:
            e.attach_printable(f"while building refund {request.refund_id}")
            raise
        ip_address = get_browser_info(request.browser_info).get_ip_address()
        return cls(
            amount=item.amount,
            original_transaction_id=meta.capture_id,
            ip_address=ip_address,
        )


# Responses

class HelcimPaymentStatus(str, enum.Enum):
    APPROVED = "APPROVED"
    DECLINED = "DECLINED"


class HelcimTransactionType(str, enum.Enum):
    PURCHASE = "purchase"
    PRE_AUTH = "preAuth"
    CAPTURE = "capture"
    VERIFY = "verify"


class HelcimRefundTransactionType(str, enum.Enum):
    REFUND = "refund"


PAYMENT_STATUS_MATRIX = StatusMatrix(
    HelcimTransactionType,
    HelcimPaymentStatus,
    {
        (HelcimTransactionType.PURCHASE, HelcimPaymentStatus.APPROVED): AttemptStatus.CHARGED,
        (HelcimTransactionType.PURCHASE, HelcimPaymentStatus.DECLINED): AttemptStatus.FAILURE,
        (HelcimTransactionType.PRE_AUTH, HelcimPaymentStatus.APPROVED): AttemptStatus.AUTHORIZED,
        (HelcimTransactionType.PRE_AUTH, HelcimPaymentStatus.DECLINED): AttemptStatus.AUTHORIZATION_FAILED,
        # Partial captures are not distinguished; see PARTIAL_CHARGED.
        (HelcimTransactionType.CAPTURE, HelcimPaymentStatus.APPROVED): AttemptStatus.CHARGED,
        (HelcimTransactionType.CAPTURE, HelcimPaymentStatus.DECLINED): AttemptStatus.CAPTURE_FAILED,
        (HelcimTransactionType.VERIFY, HelcimPaymentStatus.APPROVED): AttemptStatus.AUTHENTICATION_SUCCESSFUL,
        (HelcimTransactionType.VERIFY, HelcimPaymentStatus.DECLINED): AttemptStatus.AUTHENTICATION_FAILED,
    },
)

REFUND_STATUS_MATRIX = StatusMatrix(
    HelcimRefundTransactionType,
    HelcimPaymentStatus,
    {
        (HelcimRefundTransactionType.REFUND, HelcimPaymentStatus.APPROVED): RefundStatus.SUCCESS,
        (HelcimRefundTransactionType.REFUND, HelcimPaymentStatus.DECLINED): RefundStatus.FAILURE,
    },
)


def _parse_response(model, payload: Any):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise ResponseDeserializationFailed(
            f"Failed to parse {model.__name__}: {e.error_count()} validation error(s)"
        ) from e


class HelcimPaymentsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: HelcimPaymentStatus
    transaction_id: int = Field(alias="transactionId", ge=0)
    transaction_type: HelcimTransactionType = Field(alias="type")

    @classmethod
    def parse(cls, payload: Any) -> "HelcimPaymentsResponse":
        return _parse_response(cls, payload)

    def attempt_status(self) -> AttemptStatus:
        return PAYMENT_STATUS_MATRIX.resolve(self.transaction_type, self.status)

    def to_authorize_response(self) -> PaymentsResponseData:
        status = self.attempt_status()
        connector_metadata = None
        # An approved purchase is its own capture.
        if status == AttemptStatus.CHARGED:
            connector_metadata = HelcimMetaData(capture_id=self.transaction_id).to_envelope()
        return PaymentsResponseData(
            connector_transaction_id=str(self.transaction_id),
            status=status,
            connector_metadata=connector_metadata,
        )

    def to_sync_response(self, request: PaymentsSyncData) -> PaymentsResponseData:
        if request.sync_type == SyncRequestType.MULTIPLE_CAPTURE_SYNC:
            raise ConnectorNotImplemented("manual multiple capture sync")
        return PaymentsResponseData(
            connector_transaction_id=str(self.transaction_id),
            status=self.attempt_status(),
        )

    def to_capture_response(self) -> PaymentsResponseData:
        # Refunds must reference the capture, which the refund request cannot
        # otherwise recover.
        connector_metadata = HelcimMetaData(capture_id=self.transaction_id).to_envelope()
        return PaymentsResponseData(
            connector_transaction_id=str(self.transaction_id),
            status=self.attempt_status(),
            connector_metadata=connector_metadata,
        )


class HelcimRefundResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status: HelcimPaymentStatus
    transaction_id: int = Field(alias="transactionId", ge=0)
    transaction_type: HelcimRefundTransactionType = Field(alias="type")

    @classmethod
    def parse(cls, payload: Any) -> "HelcimRefundResponse":
        return _parse_response(cls, payload)

    def to_refunds_response(self) -> RefundsResponseData:
        return RefundsResponseData(
            connector_refund_id=str(self.transaction_id),
            refund_status=REFUND_STATUS_MATRIX.resolve(self.transaction_type, self.status),
        )


class HelcimErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    status_code: int = Field(alias="statusCode")
    code: str
    message: str
    reason: Optional[str] = None

    @classmethod
    def parse(cls, payload: Any) -> "HelcimErrorResponse":
        return _parse_response(cls, payload)

    def to_error_response(self) -> ErrorResponse:
        return ErrorResponse(
            status_code=self.status_code,
            code=self.code,
            message=self.message,
            reason=self.reason,
        )
