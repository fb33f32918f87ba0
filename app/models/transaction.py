import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class TransactionStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class TransactionType(str, enum.Enum):
    FUNDING = "funding"
    BOOKING = "booking"
    REFUND = "refund"


class PaymentMethod(str, enum.Enum):
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"
    USSD = "ussd"
    WALLET = "wallet"


# Wallet balance can only be topped up from outside the wallet.
FUNDING_METHODS = {PaymentMethod.CARD, PaymentMethod.BANK_TRANSFER, PaymentMethod.USSD}


class Transaction(Base, TimestampMixin):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    booking_id = Column(Integer, ForeignKey("bookings.id"), nullable=True)
    reference = Column(String(64), unique=True, nullable=False, index=True)
    amount = Column(Numeric(12, 2), nullable=False)
    tx_type = Column(Enum(TransactionType), nullable=False)
    status = Column(Enum(TransactionStatus), nullable=False, default=TransactionStatus.PENDING)
    payment_method = Column(Enum(PaymentMethod), nullable=False)
    description = Column(String(255), nullable=True)

    user = relationship("User", back_populates="transactions")
    booking = relationship("Booking", back_populates="transactions")


Index("ix_transactions_user_created", Transaction.user_id, Transaction.created_at)
Index("ix_transactions_type_status", Transaction.tx_type, Transaction.status)
