"""
Row-level access to users, routes, bookings and transactions.

Every mutating call is its own unit of work: it commits before returning,
or rolls back and raises ``StoreError``. Balance and seat mutations are
conditional updates checked by affected-row count, so a concurrent writer
that changed the row since it was read makes the call fail instead of
silently overdrawing or overbooking.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import case, delete, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import StoreError
from app.models import Booking, BookingStatus, Route, Transaction, User


class LedgerStore:
    def __init__(self, db: Session):
        self.db = db

    def _commit(self, operation: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(operation, exc) from exc

    def _execute(self, operation: str, statement) -> int:
        try:
            result = self.db.execute(statement.execution_options(synchronize_session=False))
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(operation, exc) from exc
        self._commit(operation)
        return result.rowcount

    def _read(self, operation: str, query):
        try:
            return query.first()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StoreError(operation, exc) from exc

    # Reads

    def get_active_route(self, route_id: int) -> Route | None:
        query = self.db.query(Route).filter(Route.id == route_id, Route.is_active.is_(True))
        return self._read("get_active_route", query)

    def get_active_user(self, user_id: int) -> User | None:
        query = self.db.query(User).filter(User.id == user_id, User.is_active.is_(True))
        return self._read("get_active_user", query)

    def get_user_booking(self, user_id: int, booking_id: int) -> Booking | None:
        query = (
            self.db.query(Booking)
            .options(joinedload(Booking.route))
            .filter(Booking.id == booking_id, Booking.user_id == user_id)
        )
        return self._read("get_user_booking", query)

    def get_balance(self, user_id: int) -> Decimal | None:
        row = self._read("get_balance", self.db.query(User.balance).filter(User.id == user_id))
        return Decimal(row[0]) if row is not None else None

    # Bookings

    def insert_booking(self, **fields) -> Booking:
        booking = Booking(**fields)
        self.db.add(booking)
        self._commit("insert_booking")
        self.db.refresh(booking)
        return booking

    def delete_booking(self, booking_id: int) -> None:
        removed = self._execute("delete_booking", delete(Booking).where(Booking.id == booking_id))
        if removed != 1:
            raise StoreError("delete_booking")

    def set_booking_status(
        self,
        booking_id: int,
        status: BookingStatus,
        *,
        expected: set[BookingStatus],
        cancelled_at: datetime | None = None,
    ) -> None:
        statement = (
            update(Booking)
            .where(Booking.id == booking_id, Booking.status.in_(list(expected)))
            .values(status=status, cancelled_at=cancelled_at)
        )
        if self._execute("set_booking_status", statement) != 1:
            raise StoreError("set_booking_status")

    # Users

    def debit_user(self, user_id: int, amount: Decimal, seats: int) -> None:
        statement = (
            update(User)
            .where(User.id == user_id, User.balance >= amount)
            .values(
                balance=User.balance - amount,
                total_rides=User.total_rides + seats,
                total_spent=User.total_spent + amount,
            )
        )
        if self._execute("debit_user", statement) != 1:
            raise StoreError("debit_user")

    def credit_user(self, user_id: int, amount: Decimal, *, rides: int = 0, spent: Decimal | None = None) -> None:
        """Add ``amount`` to the balance, optionally reversing ride and spend counters.

        Counters are floored at zero so a refund never drives them negative.
        """
        values = {"balance": User.balance + amount}
        if rides:
            values["total_rides"] = case(
                (User.total_rides >= rides, User.total_rides - rides),
                else_=0,
            )
        if spent is not None:
            values["total_spent"] = case(
                (User.total_spent >= spent, User.total_spent - spent),
                else_=0,
            )
        statement = update(User).where(User.id == user_id).values(**values)
        if self._execute("credit_user", statement) != 1:
            raise StoreError("credit_user")

    # Routes

    def reserve_seats(self, route_id: int, seats: int) -> None:
        statement = (
            update(Route)
            .where(Route.id == route_id, Route.available_seats >= seats)
            .values(available_seats=Route.available_seats - seats)
        )
        if self._execute("reserve_seats", statement) != 1:
            raise StoreError("reserve_seats")

    def release_seats(self, route_id: int, seats: int) -> None:
        statement = (
            update(Route)
            .where(Route.id == route_id)
            .values(available_seats=Route.available_seats + seats)
        )
        if self._execute("release_seats", statement) != 1:
            raise StoreError("release_seats")

    # Ledger

    def insert_transaction(self, **fields) -> Transaction:
        transaction = Transaction(**fields)
        self.db.add(transaction)
        self._commit("insert_transaction")
        self.db.refresh(transaction)
        return transaction
