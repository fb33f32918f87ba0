import enum
from sqlalchemy import Column, Integer, String, ForeignKey, Numeric, Enum, Index, DateTime
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class BookingStatus(str, enum.Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


CANCELLABLE_STATUSES = {BookingStatus.PENDING, BookingStatus.CONFIRMED}


class Booking(Base, TimestampMixin):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=False)
    booking_code = Column(String(32), unique=True, nullable=False, index=True)
    pickup_location = Column(String(255), nullable=False)
    dropoff_location = Column(String(255), nullable=False)
    departure_time = Column(DateTime(timezone=True), nullable=False)
    number_of_seats = Column(Integer, nullable=False, default=1)
    total_price = Column(Numeric(12, 2), nullable=False)
    status = Column(Enum(BookingStatus), nullable=False, default=BookingStatus.CONFIRMED)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="bookings")
    route = relationship("Route", back_populates="bookings")
    transactions = relationship("Transaction", back_populates="booking")


Index("ix_bookings_user_created", Booking.user_id, Booking.created_at)
Index("ix_bookings_route_status", Booking.route_id, Booking.status)
