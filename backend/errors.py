from fastapi import status


class StageDeckError(Exception):
    """Base error carrying the HTTP status and a message that is safe to show clients."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class NotFound(StageDeckError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Forbidden(StageDeckError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized to perform this action"


class Closed(StageDeckError):
    default_message = "Event is not open for registration"


class CapacityExceeded(StageDeckError):
    default_message = "Event is full"


class Conflict(StageDeckError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Request conflicts with the current state"


class ValidationError(StageDeckError):
    status_code = 422
    default_message = "Invalid request"


class MalformedPayload(StageDeckError):
    default_message = "Invalid QR code format"


class MissingField(MalformedPayload):
    default_message = "Invalid QR code data"


class GatewayError(StageDeckError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Upstream service failed"


class GatewayUnconfigured(GatewayError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_message = "Service is not configured"


class PaymentUnavailable(GatewayError):
    default_message = "Payment could not be started, please retry"
