"""Outbound transport to connectors.

No retries are performed here. A timeout surfaces as
``ConnectorTimeout`` so the caller can sync the payment later.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

from .errors import ConnectorTimeout, ResponseDeserializationFailed, TransportError

logger = logging.getLogger(__name__)


@dataclass
class WireRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    json: Optional[Dict[str, Any]] = None


@dataclass
class WireResponse:
    status_code: int
    body: bytes
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        try:
            return json.loads(self.body)
        except (ValueError, UnicodeDecodeError) as e:
            raise ResponseDeserializationFailed(
                f"Connector response is not valid JSON (status {self.status_code})"
            ) from e


class Transport(Protocol):
    async def send(self, request: WireRequest) -> WireResponse:
        ...


class HttpxTransport:
    """Transport backed by a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.timeout_seconds = timeout_seconds
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send(self, request: WireRequest) -> WireResponse:
        logger.debug(f"Sending {request.method} {request.url}")
        try:
            response = await self._client.request(
                request.method,
                request.url,
                headers=request.headers,
                json=request.json,
            )
        except httpx.TimeoutException as e:
            logger.warning(f"Connector timeout for {request.method} {request.url}: {e}")
            raise ConnectorTimeout(
                f"Connector did not respond within {self.timeout_seconds}s"
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Transport error for {request.method} {request.url}: {e}")
            raise TransportError(f"Transport error: {e.__class__.__name__}") from e

        logger.debug(f"Received {response.status_code} from {request.url}")
        return WireResponse(
            status_code=response.status_code,
            body=response.content,
            headers=dict(response.headers),
        )

    async def aclose(self) -> None:
        await self._client.aclose()
