from sqlalchemy import CheckConstraint, Column, Integer, String, Boolean, Numeric, Index
from sqlalchemy.orm import relationship
from app.core.database import Base
from app.models.base import TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    student_id = Column(String(32), unique=True, nullable=False, index=True)
    phone_number = Column(String(32), nullable=True)
    department = Column(String(128), nullable=True)
    level = Column(String(32), nullable=True)
    hashed_password = Column(String(255), nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    balance = Column(Numeric(12, 2), default=0, nullable=False)
    total_rides = Column(Integer, default=0, nullable=False)
    total_spent = Column(Numeric(12, 2), default=0, nullable=False)

    bookings = relationship("Booking", back_populates="user")
    transactions = relationship("Transaction", back_populates="user")


Index("ix_users_active", User.is_active)
