"""Domain errors shared by the cart, orders and pricing services.

Services raise these; `domain_exception_handler` turns them into DRF
responses so views can stay thin.
"""

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler


class DomainError(Exception):
    """Base class for business-rule failures."""

    code = "error"
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "", **details):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        self.details = details

    def as_payload(self) -> dict:
        payload = {"detail": self.message, "code": self.code}
        payload.update(self.details)
        return payload


class NotFound(DomainError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND


class Unavailable(DomainError):
    """Product inactive, or the caller may not purchase (admin accounts)."""

    code = "unavailable"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "", *, forbidden: bool = False, **details):
        super().__init__(message, **details)
        if forbidden:
            self.status_code = status.HTTP_403_FORBIDDEN


class InsufficientStock(DomainError):
    code = "insufficient_stock"
    status_code = status.HTTP_409_CONFLICT

    def __init__(self, *, product_id: str, variant_id: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Available: {available}, Requested: {requested}",
            product_id=product_id,
            variant_id=variant_id,
            available=available,
            requested=requested,
        )
        self.available = available
        self.requested = requested


class InvalidQuantity(DomainError):
    code = "invalid_quantity"


class InvalidState(DomainError):
    code = "invalid_state"


class EmptyOrder(DomainError):
    code = "empty_order"


class InvalidSignature(DomainError):
    """A provider callback failed HMAC verification."""

    code = "invalid_signature"


class Conflict(DomainError):
    """Concurrent modification detected through a stale version token."""

    code = "conflict"
    status_code = status.HTTP_409_CONFLICT


class RenderingFailure(DomainError):
    code = "rendering_failure"
    status_code = status.HTTP_502_BAD_GATEWAY


class OperationTimeout(DomainError):
    """A bounded call ran out of time. Safe to retry."""

    code = "timeout"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    def __init__(self, message: str = "", **details):
        details.setdefault("retryable", True)
        super().__init__(message, **details)


def domain_exception_handler(exc, context):
    """DRF exception handler that understands `DomainError`."""

    if isinstance(exc, DomainError):
        return Response(exc.as_payload(), status=exc.status_code)
    return exception_handler(exc, context)
