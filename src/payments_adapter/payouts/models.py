"""Canonical payout request and response models."""

from typing import Annotated, Literal, Optional, Protocol, Union

from pydantic import BaseModel, Field, SecretStr

from ..database.models import PayoutStatus


class PayoutCard(BaseModel):
    type: Literal["card"] = "card"
    card_number: SecretStr
    expiry_month: str
    expiry_year: str
    card_holder_name: Optional[str] = None


class PayoutBank(BaseModel):
    type: Literal["bank"] = "bank"
    bank_account_number: SecretStr
    bank_routing_number: Optional[SecretStr] = None
    bank_name: Optional[str] = None
    bank_country_code: Optional[str] = None


PayoutMethodData = Annotated[
    Union[PayoutCard, PayoutBank],
    Field(discriminator="type"),
]


class MerchantAccount(BaseModel):
    """Authenticated merchant context for the request."""
    merchant_id: str


class PayoutCreateRequest(BaseModel):
    payout_id: Optional[str] = None
    merchant_id: Optional[str] = None
    customer_id: Optional[str] = None
    amount: int = Field(..., ge=0, description="Amount in minor units")
    currency: str = Field(..., min_length=3, max_length=3)
    connector: Optional[str] = None
    payout_token: Optional[str] = None
    payout_method_data: Optional[PayoutMethodData] = None


class PayoutResponse(BaseModel):
    payout_id: str
    merchant_id: str
    status: PayoutStatus
    amount: int
    currency: str
    connector_payout_id: Optional[str] = None


class PayoutConnectorResponse(BaseModel):
    connector_payout_id: str
    status: PayoutStatus


class PayoutConnector(Protocol):
    """Connector that executes a created payout."""

    name: str

    async def create_payout(
        self,
        payout_id: str,
        amount: int,
        currency: str,
        method_data: Optional[PayoutMethodData],
    ) -> PayoutConnectorResponse:
        ...


class PaymentMethodLocker(Protocol):
    """Vault holding tokenized payout methods.

    Returns the stored method as a JSON document, raises ``StorageError``
    when the token cannot be resolved.
    """

    async def get_payment_method(
        self,
        customer_id: str,
        merchant_id: str,
        payout_token: str,
    ) -> str:
        ...
