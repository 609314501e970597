from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
import enum
from typing import Annotated, Any, Dict, Generic, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, Field, SecretStr, field_validator

from ..amounts import CurrencyUnit, convert_amount
from ..errors import ConnectorNotImplemented, MissingRequiredField


class AttemptStatus(str, enum.Enum):
    """Canonical payment lifecycle states shared by every connector."""
    STARTED = "started"
    PENDING = "pending"
    AUTHORIZED = "authorized"
    AUTHORIZATION_FAILED = "authorization_failed"
    CHARGED = "charged"
    PARTIAL_CHARGED = "partial_charged"
    CAPTURE_FAILED = "capture_failed"
    FAILURE = "failure"
    AUTHENTICATION_SUCCESSFUL = "authentication_successful"
    AUTHENTICATION_FAILED = "authentication_failed"
    VOIDED = "voided"


class RefundStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class CaptureMethod(str, enum.Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class SyncRequestType(str, enum.Enum):
    SINGLE_PAYMENT_SYNC = "single_payment_sync"
    MULTIPLE_CAPTURE_SYNC = "multiple_capture_sync"


# Connector credentials: each adapter accepts exactly one variant.

class HeaderKey(BaseModel):
    auth_type: Literal["header_key"] = "header_key"
    api_key: SecretStr


class BodyKey(BaseModel):
    auth_type: Literal["body_key"] = "body_key"
    api_key: SecretStr
    key1: SecretStr


class SignatureKey(BaseModel):
    auth_type: Literal["signature_key"] = "signature_key"
    api_key: SecretStr
    key1: SecretStr
    api_secret: SecretStr


class NoKey(BaseModel):
    auth_type: Literal["no_key"] = "no_key"


ConnectorAuthType = Annotated[
    Union[HeaderKey, BodyKey, SignatureKey, NoKey],
    Field(discriminator="auth_type"),
]


# Payment method data

class Card(BaseModel):
    type: Literal["card"] = "card"
    card_number: SecretStr
    card_exp_month: str
    card_exp_year: str
    card_cvc: SecretStr
    card_holder_name: Optional[str] = None

    @field_validator("card_number")
    @classmethod
    def validate_card_number(cls, v: SecretStr) -> SecretStr:
        digits = v.get_secret_value().replace(" ", "")
        if not digits.isdigit() or not 12 <= len(digits) <= 19:
            raise ValueError("card_number must be 12 to 19 digits")
        return SecretStr(digits)

    @field_validator("card_exp_month")
    @classmethod
    def validate_exp_month(cls, v: str) -> str:
        if not v.isdigit() or not 1 <= int(v) <= 12:
            raise ValueError("card_exp_month must be between 1 and 12")
        return v.zfill(2)

    @field_validator("card_exp_year")
    @classmethod
    def validate_exp_year(cls, v: str) -> str:
        if not v.isdigit() or len(v) not in (2, 4):
            raise ValueError("card_exp_year must have 2 or 4 digits")
        return v

    def get_expiry_year_2_digit(self) -> str:
        return self.card_exp_year[-2:]

    def get_expiry_month_year_2_digit_with_delimiter(self, delimiter: str) -> SecretStr:
        """Render the expiry as MM<delimiter>YY."""
        return SecretStr(f"{self.card_exp_month}{delimiter}{self.get_expiry_year_2_digit()}")

    def masked_number(self) -> str:
        number = self.card_number.get_secret_value()
        return f"{'*' * (len(number) - 4)}{number[-4:]}"


class Wallet(BaseModel):
    type: Literal["wallet"] = "wallet"
    wallet_type: str
    token: SecretStr


class BankTransfer(BaseModel):
    type: Literal["bank_transfer"] = "bank_transfer"
    bank_name: Optional[str] = None
    account_number: SecretStr
    routing_number: Optional[SecretStr] = None


PaymentMethodData = Annotated[
    Union[Card, Wallet, BankTransfer],
    Field(discriminator="type"),
]


class AddressDetails(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    line1: Optional[str] = None
    line2: Optional[str] = None
    line3: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    country: Optional[str] = None

    def get_first_name(self) -> str:
        if not self.first_name:
            raise MissingRequiredField("billing.address.first_name")
        return self.first_name

    def get_full_name(self) -> str:
        first_name = self.get_first_name()
        if self.last_name:
            return f"{first_name} {self.last_name}"
        return first_name

    def get_line1(self) -> str:
        if not self.line1:
            raise MissingRequiredField("billing.address.line1")
        return self.line1

    def get_zip(self) -> str:
        if not self.zip:
            raise MissingRequiredField("billing.address.zip")
        return self.zip


class Address(BaseModel):
    address: Optional[AddressDetails] = None
    email: Optional[str] = None


class BrowserInformation(BaseModel):
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    accept_header: Optional[str] = None
    language: Optional[str] = None

    def get_ip_address(self) -> SecretStr:
        if not self.ip_address:
            raise MissingRequiredField("browser_info.ip_address")
        return SecretStr(self.ip_address)


def get_browser_info(browser_info: Optional[BrowserInformation]) -> BrowserInformation:
    if browser_info is None:
        raise MissingRequiredField("browser_info")
    return browser_info


# Canonical requests

class PaymentsAuthorizeData(BaseModel):
    amount: int = Field(..., ge=0, description="Amount in minor units")
    currency: str
    payment_method_data: PaymentMethodData
    capture_method: CaptureMethod = CaptureMethod.AUTOMATIC
    browser_info: Optional[BrowserInformation] = None
    email: Optional[str] = None

    def is_auto_capture(self) -> bool:
        return self.capture_method == CaptureMethod.AUTOMATIC


class PaymentsCaptureData(BaseModel):
    amount_to_capture: int = Field(..., ge=0)
    currency: str
    connector_transaction_id: Optional[str] = None
    browser_info: Optional[BrowserInformation] = None


class PaymentsSyncData(BaseModel):
    connector_transaction_id: Optional[str] = None
    sync_type: SyncRequestType = SyncRequestType.SINGLE_PAYMENT_SYNC


class RefundsData(BaseModel):
    refund_id: str
    refund_amount: int = Field(..., ge=0)
    currency: str
    connector_transaction_id: Optional[str] = None
    connector_refund_id: Optional[str] = None
    connector_metadata: Optional[Dict[str, Any]] = None
    browser_info: Optional[BrowserInformation] = None


Req = TypeVar("Req", bound=BaseModel)


class RouterData(BaseModel, Generic[Req]):
    """Everything a connector needs for one outbound call."""
    merchant_id: str
    attempt_id: str
    connector_auth_type: ConnectorAuthType
    request: Req
    billing: Optional[Address] = None

    def get_billing_address(self) -> AddressDetails:
        if self.billing is None or self.billing.address is None:
            raise MissingRequiredField("billing.address")
        return self.billing.address


# Canonical responses

class PaymentsResponseData(BaseModel):
    connector_transaction_id: str
    status: AttemptStatus
    connector_metadata: Optional[Dict[str, Any]] = None


class RefundsResponseData(BaseModel):
    connector_refund_id: str
    refund_status: RefundStatus


class ErrorResponse(BaseModel):
    status_code: int
    code: str
    message: str
    reason: Optional[str] = None


T = TypeVar("T")


@dataclass(frozen=True)
class ConnectorRouterData(Generic[T]):
    """Pairs a connector-normalized amount with the canonical call payload.

    Built fresh for each outbound call and never persisted.
    """
    amount: Decimal
    router_data: T

    @classmethod
    def build(
        cls,
        currency_unit: CurrencyUnit,
        currency: str,
        amount: int,
        item: T,
    ) -> "ConnectorRouterData[T]":
        return cls(amount=convert_amount(currency_unit, amount, currency), router_data=item)


class ConnectorBase(ABC):
    """
    Adapter contract every connector implements. Request/response
    transformation is pure; the only suspension point inside an operation is
    the transport call.
    """

    name: str = "base"
    currency_unit: CurrencyUnit = CurrencyUnit.BASE

    @abstractmethod
    async def authorize(
        self, router_data: RouterData[PaymentsAuthorizeData]
    ) -> PaymentsResponseData:
        raise NotImplementedError

    @abstractmethod
    async def capture(
        self, router_data: RouterData[PaymentsCaptureData]
    ) -> PaymentsResponseData:
        raise NotImplementedError

    @abstractmethod
    async def sync(
        self, router_data: RouterData[PaymentsSyncData]
    ) -> PaymentsResponseData:
        raise NotImplementedError

    @abstractmethod
    async def refund(self, router_data: RouterData[RefundsData]) -> RefundsResponseData:
        raise NotImplementedError

    @abstractmethod
    async def refund_sync(self, router_data: RouterData[RefundsData]) -> RefundsResponseData:
        raise NotImplementedError

    async def void(self, router_data: RouterData[PaymentsSyncData]) -> PaymentsResponseData:
        raise ConnectorNotImplemented("void")

    def health_check(self) -> Dict[str, Any]:
        return {"ok": True, "connector": self.name}
