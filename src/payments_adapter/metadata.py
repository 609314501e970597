"""Connector-namespaced correlation metadata.

Some connectors do not return enough information to link a follow-up call to
an earlier one (a refund needs the *capture's* transaction id, but the refund
request only carries the original payment reference). The adapter stores what
it needs in a small versioned envelope attached to the canonical response:

    {"connector": "helcim", "version": 1, "data": {"captureId": 4242}}

The envelope is persisted with the payment attempt and fed back into later
requests. Decode failures are raised here, at the boundary.
"""

import logging
from typing import Any, ClassVar, Dict, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import InvalidConnectorMetadata

logger = logging.getLogger(__name__)

M = TypeVar("M", bound="ConnectorMetadata")


class ConnectorMetadata(BaseModel):
    """Base class for a connector's correlation metadata schema."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    connector: ClassVar[str]
    version: ClassVar[int] = 1

    def to_envelope(self) -> Dict[str, Any]:
        return {
            "connector": self.connector,
            "version": self.version,
            "data": self.model_dump(by_alias=True),
        }

    @classmethod
    def from_envelope(cls: Type[M], raw: Dict[str, Any]) -> M:
        if not isinstance(raw, dict):
            raise InvalidConnectorMetadata(
                f"Connector metadata must be an object, got {type(raw).__name__}"
            )
        connector = raw.get("connector")
        if connector != cls.connector:
            raise InvalidConnectorMetadata(
                f"Connector metadata belongs to '{connector}', expected '{cls.connector}'"
            )
        version = raw.get("version")
        if version != cls.version:
            raise InvalidConnectorMetadata(
                f"Unsupported {cls.connector} metadata version {version!r}, "
                f"expected {cls.version}"
            )
        try:
            return cls.model_validate(raw.get("data"))
        except ValidationError as e:
            raise InvalidConnectorMetadata(
                f"Failed to parse {cls.__name__}: {e.error_count()} validation error(s)"
            ) from e


def to_connector_meta(raw: Optional[Dict[str, Any]], model: Type[M]) -> M:
    """Decode the correlation metadata a follow-up request depends on.

    Raises:
        InvalidConnectorMetadata: If no metadata was stored or it does not decode.
    """
    if raw is None:
        raise InvalidConnectorMetadata("Connector metadata is missing")
    meta = model.from_envelope(raw)
    logger.debug(f"Decoded {model.connector} connector metadata v{model.version}")
    return meta
