"""HTTP surface for payments and payouts."""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession

from .auth import limiter, verify_api_key
from .config import get_settings, resolve_connector_auth
from .connectors.base import (
    Address,
    BrowserInformation,
    CaptureMethod,
    ConnectorBase,
    PaymentMethodData,
    PaymentsAuthorizeData,
    SyncRequestType,
)
from .connectors.helcim import HelcimConnector
from .database import PayoutRepository, close_db, get_db, init_db
from .errors import PaymentsAdapterError
from .payouts import MerchantAccount, PayoutCreateRequest, PayoutResponse, PayoutService
from .services import PaymentService
from .transport import HttpxTransport

logger = logging.getLogger(__name__)

RATE_LIMIT = "100/minute"


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    await init_db()
    transport = HttpxTransport(timeout_seconds=settings.connector_timeout_seconds)
    app.state.connector = HelcimConnector(transport, base_url=settings.helcim_base_url)
    logger.info("Payments adapter started")
    try:
        yield
    finally:
        await transport.aclose()
        await close_db()


app = FastAPI(title="Payments Adapter API", lifespan=lifespan)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(PaymentsAdapterError)
async def payments_adapter_error_handler(request: Request, exc: PaymentsAdapterError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


def get_connector(request: Request) -> ConnectorBase:
    return request.app.state.connector


def get_payment_service(
    db: AsyncSession = Depends(get_db),
    connector: ConnectorBase = Depends(get_connector),
) -> PaymentService:
    return PaymentService(db, connector, resolve_connector_auth(get_settings()))


def get_payout_service(db: AsyncSession = Depends(get_db)) -> PayoutService:
    return PayoutService(PayoutRepository(db))


class CreatePaymentBody(BaseModel):
    amount: int = Field(..., ge=0, description="Amount in minor units")
    currency: str = Field(..., min_length=3, max_length=3)
    payment_method_data: PaymentMethodData
    capture_method: CaptureMethod = CaptureMethod.AUTOMATIC
    billing: Optional[Address] = None
    browser_info: Optional[BrowserInformation] = None
    email: Optional[str] = None


class CaptureBody(BaseModel):
    amount: int = Field(..., ge=0)
    browser_info: Optional[BrowserInformation] = None


class RefundBody(BaseModel):
    amount: int = Field(..., ge=0)
    refund_id: Optional[str] = None
    browser_info: Optional[BrowserInformation] = None


async def _commit_and_raise(db: AsyncSession, exc: PaymentsAdapterError):
    # Keep the recorded error on the attempt or refund; get_db rolls back otherwise.
    await db.commit()
    raise exc


@app.get("/health")
async def health(connector: ConnectorBase = Depends(get_connector)):
    return connector.health_check()


@app.post("/payments")
@limiter.limit(RATE_LIMIT)
async def create_payment(
    request: Request,
    body: CreatePaymentBody,
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PaymentService = Depends(get_payment_service),
):
    payment_request = PaymentsAuthorizeData(
        amount=body.amount,
        currency=body.currency,
        payment_method_data=body.payment_method_data,
        capture_method=body.capture_method,
        browser_info=body.browser_info,
        email=body.email,
    )
    try:
        attempt = await service.authorize(merchant.merchant_id, payment_request, body.billing)
    except PaymentsAdapterError as e:
        await _commit_and_raise(service.session, e)
    return attempt.to_dict()


@app.post("/payments/{attempt_id}/capture")
@limiter.limit(RATE_LIMIT)
async def capture_payment(
    request: Request,
    attempt_id: str,
    body: CaptureBody,
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        attempt = await service.capture(attempt_id, body.amount, body.browser_info)
    except PaymentsAdapterError as e:
        await _commit_and_raise(service.session, e)
    return attempt.to_dict()


@app.post("/payments/{attempt_id}/refund")
@limiter.limit(RATE_LIMIT)
async def refund_payment(
    request: Request,
    attempt_id: str,
    body: RefundBody,
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        refund = await service.refund(
            attempt_id, body.amount, body.browser_info, refund_id=body.refund_id
        )
    except PaymentsAdapterError as e:
        await _commit_and_raise(service.session, e)
    return refund.to_dict()


@app.get("/payments/{attempt_id}")
async def retrieve_payment(
    attempt_id: str,
    force_sync: bool = Query(default=False),
    sync_type: SyncRequestType = Query(default=SyncRequestType.SINGLE_PAYMENT_SYNC),
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        if force_sync:
            attempt = await service.sync(attempt_id, sync_type)
        else:
            attempt = await service.get_attempt(attempt_id)
    except PaymentsAdapterError as e:
        await _commit_and_raise(service.session, e)
    return attempt.to_dict()


@app.get("/refunds/{refund_id}")
async def retrieve_refund(
    refund_id: str,
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PaymentService = Depends(get_payment_service),
):
    try:
        refund = await service.refund_sync(refund_id)
    except PaymentsAdapterError as e:
        await _commit_and_raise(service.session, e)
    return refund.to_dict()


@app.post("/payouts", response_model=PayoutResponse)
@limiter.limit(RATE_LIMIT)
async def create_payout(
    request: Request,
    body: PayoutCreateRequest,
    merchant: MerchantAccount = Depends(verify_api_key),
    service: PayoutService = Depends(get_payout_service),
):
    return await service.create_payout(merchant, body)
