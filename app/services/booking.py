"""
Booking settlement and cancellation.

Settlement runs as an ordered sequence of committed steps against the ledger
store: insert booking, debit user, reserve seats, record ledger transaction.
When a step fails, every earlier step that moved money or inventory is undone
in reverse order before the error is raised. A failed compensation is logged
and never replaces the original error. The ledger write is the only step
whose failure is tolerated; it is logged with the ``RECONCILE`` marker and
picked up by ``app.services.reconciliation``.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import logging
from typing import Callable

from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.exceptions import (
    AlreadyCancelled,
    CancellationWindowClosed,
    InsufficientCapacity,
    InsufficientFunds,
    NotCancellable,
    NotFound,
    PaymentFailed,
    PersistenceError,
    RefundFailed,
    SeatReservationFailed,
    StoreError,
    ValidationFailed,
)
from app.models import (
    Booking,
    BookingStatus,
    CANCELLABLE_STATUSES,
    PaymentMethod,
    Route,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from app.services.ledger import LedgerStore
from app.utils.references import generate_booking_code, refund_reference, to_money

logger = logging.getLogger(__name__)
settings = get_settings()


@dataclass
class BookingResult:
    booking: Booking
    new_balance: Decimal
    route: Route
    transaction: Transaction | None = None


@dataclass
class CancellationResult:
    booking: Booking
    refund_amount: Decimal
    new_balance: Decimal
    transaction: Transaction | None = None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive timestamps; everything is stored in UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _snapshot(row) -> dict:
    return {column.key: getattr(row, column.key) for column in row.__table__.columns}


def _detached_booking(booking_fields: dict, route_fields: dict, **changes) -> Booking:
    # Session rows expire on every commit; a copy outside the session never reloads.
    booking = Booking(**{**booking_fields, **changes})
    booking.route = Route(**route_fields)
    return booking


def _compensate(description: str, action: Callable[[], None]) -> None:
    try:
        action()
    except StoreError:
        logger.error("Compensation failed: %s", description, exc_info=True)
        return
    logger.warning("Compensated: %s", description)


def _validate_booking_request(
    pickup_location: str,
    dropoff_location: str,
    departure_time: datetime,
    number_of_seats: int,
    now: datetime,
) -> None:
    max_seats = settings.max_seats_per_booking
    if not 1 <= number_of_seats <= max_seats:
        raise ValidationFailed(f"Number of seats must be between 1 and {max_seats}")
    if as_utc(departure_time) <= now:
        raise ValidationFailed("Departure time must be in the future")
    if (pickup_location or "").strip() == (dropoff_location or "").strip():
        raise ValidationFailed("Pickup and dropoff locations must be different")


def create_booking(
    db: Session,
    *,
    user_id: int,
    route_id: int,
    pickup_location: str,
    dropoff_location: str,
    departure_time: datetime,
    number_of_seats: int = 1,
    now: datetime | None = None,
) -> BookingResult:
    now = now or utcnow()
    _validate_booking_request(pickup_location, dropoff_location, departure_time, number_of_seats, now)
    store = LedgerStore(db)

    try:
        route = store.get_active_route(route_id)
        if route is None:
            raise NotFound("Route not found")
        if route.available_seats < number_of_seats:
            raise InsufficientCapacity(number_of_seats, route.available_seats)

        user = store.get_active_user(user_id)
        if user is None:
            raise NotFound("User not found")

        route_fields = _snapshot(route)
        total_price = to_money(Decimal(route.price) * number_of_seats)
        balance = to_money(user.balance)
        if balance < total_price:
            raise InsufficientFunds(total_price, balance)
    except StoreError as exc:
        logger.error("Booking pre-check read failed user=%s route=%s: %s", user_id, route_id, exc)
        raise PersistenceError() from exc

    booking_code = generate_booking_code(now)
    try:
        booking = store.insert_booking(
            user_id=user_id,
            route_id=route_id,
            booking_code=booking_code,
            pickup_location=pickup_location.strip(),
            dropoff_location=dropoff_location.strip(),
            departure_time=as_utc(departure_time),
            number_of_seats=number_of_seats,
            total_price=total_price,
            status=BookingStatus.CONFIRMED,
        )
    except StoreError as exc:
        logger.error("Booking insert failed user=%s route=%s code=%s: %s", user_id, route_id, booking_code, exc)
        raise PersistenceError() from exc
    booking_id = booking.id
    booking_fields = _snapshot(booking)

    try:
        store.debit_user(user_id, total_price, number_of_seats)
    except StoreError as exc:
        logger.error("Debit failed for booking %s user=%s amount=%s: %s", booking_code, user_id, total_price, exc)
        _compensate(f"delete booking {booking_code}", lambda: store.delete_booking(booking_id))
        raise PaymentFailed() from exc

    try:
        store.reserve_seats(route_id, number_of_seats)
    except StoreError as exc:
        logger.error("Seat reservation failed for booking %s route=%s seats=%s: %s", booking_code, route_id, number_of_seats, exc)
        _compensate(f"delete booking {booking_code}", lambda: store.delete_booking(booking_id))
        _compensate(
            f"restore user {user_id} after {booking_code}",
            lambda: store.credit_user(user_id, total_price, rides=number_of_seats, spent=total_price),
        )
        raise SeatReservationFailed() from exc

    transaction = None
    try:
        transaction = store.insert_transaction(
            user_id=user_id,
            booking_id=booking_id,
            reference=booking_code,
            amount=total_price,
            tx_type=TransactionType.BOOKING,
            status=TransactionStatus.COMPLETED,
            payment_method=PaymentMethod.WALLET,
            description=f"Shuttle booking {booking_code}",
        )
    except StoreError as exc:
        logger.error("RECONCILE booking ledger entry missing code=%s user=%s amount=%s: %s", booking_code, user_id, total_price, exc)

    try:
        new_balance = to_money(store.get_balance(user_id))
        booking = store.get_user_booking(user_id, booking_id)
        if booking is None:
            raise StoreError("get_user_booking")
    except StoreError:
        # Settlement is complete; report the balance we computed.
        logger.warning("Post-settlement read failed for booking %s", booking_code, exc_info=True)
        new_balance = balance - total_price
        booking = _detached_booking(booking_fields, route_fields)

    logger.info(
        "Booking settled code=%s user=%s route=%s seats=%s amount=%s balance=%s",
        booking_code,
        user_id,
        route_id,
        number_of_seats,
        total_price,
        new_balance,
    )
    return BookingResult(booking=booking, new_balance=new_balance, route=booking.route, transaction=transaction)


def cancel_booking(
    db: Session,
    *,
    user_id: int,
    booking_id: int,
    now: datetime | None = None,
) -> CancellationResult:
    now = now or utcnow()
    store = LedgerStore(db)
    cutoff_hours = settings.cancellation_cutoff_hours

    try:
        booking = store.get_user_booking(user_id, booking_id)
    except StoreError as exc:
        logger.error("Booking read failed id=%s user=%s: %s", booking_id, user_id, exc)
        raise PersistenceError() from exc
    if booking is None:
        raise NotFound("Booking not found")
    if booking.status == BookingStatus.CANCELLED:
        raise AlreadyCancelled()
    if booking.status == BookingStatus.COMPLETED:
        raise NotCancellable()
    if as_utc(booking.departure_time) - now < timedelta(hours=cutoff_hours):
        raise CancellationWindowClosed(cutoff_hours)

    try:
        current_balance = store.get_balance(user_id)
    except StoreError as exc:
        logger.error("Balance read failed for cancellation user=%s: %s", user_id, exc)
        raise PersistenceError() from exc
    if current_balance is None:
        raise NotFound("User not found")
    balance = to_money(current_balance)

    booking_fields = _snapshot(booking)
    route_fields = _snapshot(booking.route)
    booking_code = booking.booking_code
    route_id = booking.route_id
    seats = booking.number_of_seats
    prior_status = booking.status
    refund_amount = to_money(booking.total_price)
    new_balance = balance + refund_amount

    try:
        store.set_booking_status(
            booking_id,
            BookingStatus.CANCELLED,
            expected=set(CANCELLABLE_STATUSES),
            cancelled_at=now,
        )
    except StoreError as exc:
        logger.error("Cancel status update failed for booking %s: %s", booking_code, exc)
        raise PersistenceError() from exc

    try:
        store.credit_user(user_id, refund_amount, rides=seats, spent=refund_amount)
    except StoreError as exc:
        logger.error("Refund credit failed for booking %s user=%s amount=%s: %s", booking_code, user_id, refund_amount, exc)
        _compensate(
            f"revert booking {booking_code} to {prior_status.value}",
            lambda: store.set_booking_status(booking_id, prior_status, expected={BookingStatus.CANCELLED}),
        )
        raise RefundFailed() from exc

    try:
        store.release_seats(route_id, seats)
    except StoreError as exc:
        logger.error("RECONCILE seats not released route=%s seats=%s booking=%s: %s", route_id, seats, booking_code, exc)

    transaction = None
    reference = refund_reference(booking_code)
    try:
        transaction = store.insert_transaction(
            user_id=user_id,
            booking_id=booking_id,
            reference=reference,
            amount=refund_amount,
            tx_type=TransactionType.REFUND,
            status=TransactionStatus.COMPLETED,
            payment_method=PaymentMethod.WALLET,
            description=f"Refund for cancelled booking {booking_code}",
        )
    except StoreError as exc:
        logger.error("RECONCILE refund ledger entry missing ref=%s user=%s amount=%s: %s", reference, user_id, refund_amount, exc)

    try:
        new_balance = to_money(store.get_balance(user_id))
        booking = store.get_user_booking(user_id, booking_id)
        if booking is None:
            raise StoreError("get_user_booking")
    except StoreError:
        logger.warning("Post-refund read failed for booking %s", booking_code, exc_info=True)
        booking = _detached_booking(booking_fields, route_fields, status=BookingStatus.CANCELLED, cancelled_at=now)

    logger.info("Booking cancelled code=%s user=%s refund=%s balance=%s", booking_code, user_id, refund_amount, new_balance)
    return CancellationResult(
        booking=booking,
        refund_amount=refund_amount,
        new_balance=new_balance,
        transaction=transaction,
    )
