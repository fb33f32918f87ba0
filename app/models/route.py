from sqlalchemy import CheckConstraint, Column, Integer, String, Boolean, Numeric, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class Route(Base, TimestampMixin):
    __tablename__ = "routes"
    __table_args__ = (
        CheckConstraint("available_seats >= 0", name="ck_routes_seats_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    route_name = Column(String(128), nullable=False)
    departure_location = Column(String(128), nullable=False)
    arrival_location = Column(String(128), nullable=False)
    estimated_time = Column(String(32), nullable=True)
    distance = Column(String(32), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)
    available_seats = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    bookings = relationship("Booking", back_populates="route")


Index("ix_routes_active_name", Route.is_active, Route.route_name)
