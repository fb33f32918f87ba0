from app.models.user import User
from app.models.route import Route
from app.models.booking import Booking, BookingStatus, CANCELLABLE_STATUSES
from app.models.transaction import Transaction, TransactionStatus, TransactionType, PaymentMethod, FUNDING_METHODS

__all__ = [
    "User",
    "Route",
    "Booking",
    "BookingStatus",
    "CANCELLABLE_STATUSES",
    "Transaction",
    "TransactionStatus",
    "TransactionType",
    "PaymentMethod",
    "FUNDING_METHODS",
]
