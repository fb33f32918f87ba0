from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from app.schemas.booking import BookingOut
from app.schemas.common import CamelModel, Money
from app.schemas.transaction import TransactionOut


class UserOut(BaseModel):
    id: int
    email: EmailStr
    full_name: str
    student_id: str
    phone_number: str | None = None
    department: str | None = None
    level: str | None = None
    balance: Money
    total_rides: int
    total_spent: Money
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ProfileStats(CamelModel):
    total_rides: int
    total_spent: Money
    current_balance: Money
    member_since: Optional[datetime] = None


class ProfileOut(CamelModel):
    user: UserOut
    stats: ProfileStats
    recent_bookings: list[BookingOut]
    recent_transactions: list[TransactionOut]
