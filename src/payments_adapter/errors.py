"""Error taxonomy for connector adapters and the payout guard."""

from typing import Any, Dict, List, Optional


class PaymentsAdapterError(Exception):
    """Base class for every error raised by this package.

    Errors carry a list of human-readable context lines that callers append
    with ``attach_printable`` while the error propagates. The error kind never
    changes as context is added.
    """

    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message
        self.context: List[str] = []

    def attach_printable(self, context: str) -> "PaymentsAdapterError":
        self.context.append(context)
        return self

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.message,
        }

    def __str__(self) -> str:
        if not self.context:
            return self.message
        return f"{self.message} ({'; '.join(self.context)})"


# Connector errors


class ConnectorError(PaymentsAdapterError):
    """Raised while building a wire request or reading a wire response."""

    status_code = 400
    error_code = "connector_error"


class FailedToObtainAuthType(ConnectorError):
    """Wrong ConnectorAuthType variant supplied for a connector."""

    status_code = 500
    error_code = "failed_to_obtain_auth_type"

    def __init__(self):
        super().__init__("Failed to obtain authentication type")


class MissingRequiredField(ConnectorError):
    error_code = "missing_required_field"

    def __init__(self, field_name: str):
        super().__init__(f"Missing required field: {field_name}")
        self.field_name = field_name

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["field_name"] = self.field_name
        return data


class ConnectorNotImplemented(ConnectorError):
    """The connector family cannot perform the requested operation.

    Reported distinctly from transient failures so callers do not retry.
    """

    status_code = 501
    error_code = "not_implemented"

    def __init__(self, feature: str):
        super().__init__(f"{feature} is not implemented")
        self.feature = feature


class RequestEncodingFailed(ConnectorError):
    error_code = "request_encoding_failed"

    def __init__(self, message: str = "Failed to encode connector request"):
        super().__init__(message)


class ResponseDeserializationFailed(ConnectorError):
    status_code = 502
    error_code = "response_deserialization_failed"

    def __init__(self, message: str = "Failed to deserialize connector response"):
        super().__init__(message)


class InvalidConnectorMetadata(RequestEncodingFailed):
    """Correlation metadata is absent, belongs to another namespace or does not parse."""

    status_code = 500
    error_code = "invalid_connector_metadata"

    def __init__(self, message: str = "Invalid connector metadata"):
        super().__init__(message)


class AmountConversionFailed(ConnectorError):
    error_code = "amount_conversion_failed"

    def __init__(self, message: str = "Failed to convert amount"):
        super().__init__(message)


class ConnectorErrorResponse(ConnectorError):
    """The connector answered with an error body."""

    status_code = 502
    error_code = "connector_error_response"

    def __init__(
        self,
        http_status: int,
        code: str,
        message: str,
        reason: Optional[str] = None,
    ):
        super().__init__(f"Connector returned {http_status}: {code} {message}")
        self.http_status = http_status
        self.code = code
        self.reason = reason
        self.connector_message = message

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update(
            {
                "connector_status_code": self.http_status,
                "connector_code": self.code,
                "connector_message": self.connector_message,
                "reason": self.reason,
            }
        )
        return data


class TransportError(ConnectorError):
    status_code = 502
    error_code = "transport_error"


class ConnectorTimeout(TransportError):
    """The connector call timed out after the request was sent.

    The outcome is unknown; the caller should sync rather than assume failure.
    """

    status_code = 504
    error_code = "connector_timeout"

    def __init__(self, message: str = "Connector request timed out"):
        super().__init__(message)


# API errors


class ApiError(PaymentsAdapterError):
    """Errors surfaced to the merchant-facing layer."""


class InvalidDataFormat(ApiError):
    status_code = 422
    error_code = "invalid_data_format"

    def __init__(self, field_name: str, expected_format: str):
        super().__init__(
            f"{field_name} contains invalid data. Expected format is {expected_format}"
        )
        self.field_name = field_name
        self.expected_format = expected_format


class DuplicatePayout(ApiError):
    status_code = 409
    error_code = "duplicate_payout"

    def __init__(self, payout_id: str):
        super().__init__(f"payout with the given payout_id '{payout_id}' already exists")
        self.payout_id = payout_id

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["payout_id"] = self.payout_id
        return data


class PayoutNotFound(ApiError):
    status_code = 404
    error_code = "payout_not_found"

    def __init__(self, message: str = "Payout does not exist in our records"):
        super().__init__(message)


class PaymentNotFound(ApiError):
    status_code = 404
    error_code = "payment_not_found"

    def __init__(self, message: str = "Payment does not exist in our records"):
        super().__init__(message)


class InternalServerError(ApiError):
    status_code = 500
    error_code = "internal_server_error"

    def __init__(self, message: str = "Something went wrong"):
        super().__init__(message)


# Storage errors


class StorageError(PaymentsAdapterError):
    """A genuine backend failure, never a "not found" result."""


class NotFoundError(StorageError):
    status_code = 404
    error_code = "not_found"


class UniqueViolationError(StorageError):
    status_code = 409
    error_code = "unique_violation"
