"""
Domain errors and the handlers that render them as the API envelope.

Every error response has the shape ``{"success": false, "error": "..."}``,
optionally with ``details``. Messages on 5xx errors are generic; the
underlying cause is logged where the error is raised.
"""

import logging
from decimal import Decimal
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ShuttleError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Server error"

    def __init__(self, message: Optional[str] = None, details: Optional[dict[str, Any]] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class ValidationFailed(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Validation failed"


class NotFound(ShuttleError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class InsufficientCapacity(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(
            f"Only {available} seat(s) available on this route",
            details={"requested": requested, "available": available},
        )


class InsufficientFunds(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, required: Decimal, available: Decimal):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient balance. Required: {required:.2f}, available: {available:.2f}",
            details={"required": float(required), "available": float(available)},
        )


class CancellationWindowClosed(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, cutoff_hours: int):
        super().__init__(
            f"Bookings can only be cancelled at least {cutoff_hours} hours before departure"
        )


class AlreadyCancelled(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Booking is already cancelled"


class NotCancellable(ShuttleError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Completed bookings cannot be cancelled"


class PersistenceError(ShuttleError):
    default_message = "Could not save your request. Please try again."


class PaymentFailed(ShuttleError):
    default_message = "Payment could not be processed. Your booking was not created."


class SeatReservationFailed(ShuttleError):
    default_message = "Seats could not be reserved. Your booking was not created and no charge was made."


class RefundFailed(ShuttleError):
    default_message = "Refund could not be processed. Your booking was not cancelled."


class StoreError(Exception):
    """Raised by the ledger store when a read or write against the database fails."""

    def __init__(self, operation: str, cause: Optional[BaseException] = None):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}" if cause else f"{operation} failed")


def error_body(message: str, details: Optional[dict[str, Any]] = None) -> dict:
    body: dict[str, Any] = {"success": False, "error": message}
    if details:
        body["details"] = details
    return body


async def shuttle_error_handler(request: Request, exc: ShuttleError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s on %s %s", type(exc).__name__, request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.message, exc.details))


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    fields = []
    for err in exc.errors():
        loc = [str(part) for part in err.get("loc", ()) if part != "body"]
        fields.append({"field": ".".join(loc), "message": err.get("msg", "Invalid value")})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=jsonable_encoder(error_body("Validation failed", {"fields": fields})),
    )
