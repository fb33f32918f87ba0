from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.booking import BookingStatus
from app.schemas.common import CamelModel, Money
from app.schemas.route import RouteSummary


class CreateBookingRequest(CamelModel):
    route_id: int = Field(..., ge=1)
    pickup_location: str = Field(..., min_length=1, max_length=255)
    dropoff_location: str = Field(..., min_length=1, max_length=255)
    departure_time: datetime
    number_of_seats: int = Field(default=1, ge=1, le=10)


class BookingOut(BaseModel):
    id: int
    booking_code: str
    user_id: int
    route_id: int
    pickup_location: str
    dropoff_location: str
    departure_time: datetime
    number_of_seats: int
    total_price: Money
    status: BookingStatus
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    route: Optional[RouteSummary] = None

    class Config:
        from_attributes = True


class BookingBrief(BaseModel):
    id: int
    booking_code: str
    pickup_location: str
    dropoff_location: str

    class Config:
        from_attributes = True


class BookingCreated(CamelModel):
    booking: BookingOut
    new_balance: Money
    route: RouteSummary


class BookingCancelled(CamelModel):
    refund_amount: Money
    new_balance: Money
    booking: BookingOut
