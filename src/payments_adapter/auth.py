"""Authentication and rate limiting helpers for the API."""

import secrets
import logging

from fastapi import HTTPException, Security
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from slowapi import Limiter
from slowapi.util import get_remote_address

from .config import get_settings
from .payouts import MerchantAccount

logger = logging.getLogger(__name__)

security = HTTPBearer()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)


async def verify_api_key(
    credentials: HTTPAuthorizationCredentials = Security(security),
) -> MerchantAccount:
    """Verify the API key from the Authorization header.

    Args:
        credentials: HTTP Bearer credentials from the request.

    Returns:
        The merchant account the key belongs to.

    Raises:
        HTTPException: If API key is invalid or not configured.
    """
    settings = get_settings()
    if settings.api_key is None:
        logger.error("API_KEY environment variable is not configured")
        raise HTTPException(status_code=500, detail="Server configuration error")
    if not secrets.compare_digest(credentials.credentials, settings.api_key.get_secret_value()):
        raise HTTPException(status_code=401, detail="Invalid API key")
    return MerchantAccount(merchant_id=settings.merchant_id)
