from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, Field

from app.models.transaction import PaymentMethod, TransactionStatus, TransactionType
from app.schemas.booking import BookingBrief
from app.schemas.common import Money


class TransactionOut(BaseModel):
    id: int
    created_at: Optional[datetime] = None
    reference: str
    amount: Money
    type: TransactionType = Field(validation_alias=AliasChoices("tx_type", "type"))
    status: TransactionStatus
    payment_method: PaymentMethod
    description: str | None = None
    booking_id: int | None = None

    class Config:
        from_attributes = True


class TransactionWithBookingOut(TransactionOut):
    booking: Optional[BookingBrief] = None
