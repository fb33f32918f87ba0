import logging
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from sqlalchemy import inspect

from app.core.exceptions import (
    AlreadyCancelled,
    CancellationWindowClosed,
    NotCancellable,
    NotFound,
    PersistenceError,
    RefundFailed,
    StoreError,
)
from app.models import BookingStatus, Transaction, TransactionType
from app.schemas.booking import BookingOut
from app.services.booking import cancel_booking, create_booking
from app.services.ledger import LedgerStore
from app.services.reconciliation import find_ledger_gaps

NOW = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def _confirmed_booking(db, user, route, *, seats=2, hours_ahead=3):
    return create_booking(
        db,
        user_id=user.id,
        route_id=route.id,
        pickup_location="Hostel",
        dropoff_location="Library",
        departure_time=NOW + timedelta(hours=hours_ahead),
        number_of_seats=seats,
        now=NOW,
    ).booking


def test_round_trip_restores_wallet_and_seats(db, make_user, make_route):
    user = make_user(balance="1000")
    route = make_route(price="150", seats=6)
    booking = _confirmed_booking(db, user, route)

    result = cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    assert result.refund_amount == Decimal("300.00")
    assert result.new_balance == Decimal("1000.00")
    assert result.booking.status == BookingStatus.CANCELLED
    assert result.booking.cancelled_at is not None

    db.refresh(user)
    db.refresh(route)
    assert user.balance == Decimal("1000.00")
    assert user.total_rides == 0
    assert user.total_spent == Decimal("0.00")
    assert route.available_seats == 6

    refund = db.query(Transaction).filter(Transaction.tx_type == TransactionType.REFUND).one()
    assert refund.reference == f"REFUND-{booking.booking_code}"
    assert refund.amount == Decimal("300.00")
    assert find_ledger_gaps(db) == []


def test_cancellation_inside_cutoff_is_rejected(db, make_user, make_route):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route, hours_ahead=3)

    with pytest.raises(CancellationWindowClosed) as excinfo:
        cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW + timedelta(hours=2))

    assert excinfo.value.message == "Bookings can only be cancelled at least 2 hours before departure"
    db.refresh(user)
    db.refresh(route)
    assert user.balance == Decimal("700.00")
    assert route.available_seats == 4


def test_cancellation_exactly_at_cutoff_is_allowed(db, make_user, make_route):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route, hours_ahead=3)

    result = cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW + timedelta(hours=1))

    assert result.booking.status == BookingStatus.CANCELLED


def test_second_cancellation_is_rejected(db, make_user, make_route):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)
    cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    with pytest.raises(AlreadyCancelled):
        cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    db.refresh(user)
    assert user.balance == Decimal("1000.00")


def test_completed_booking_is_not_cancellable(db, make_user, make_route):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)
    booking.status = BookingStatus.COMPLETED
    db.commit()

    with pytest.raises(NotCancellable):
        cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)


def test_other_users_booking_is_not_found(db, make_user, make_route):
    owner = make_user(balance="1000")
    stranger = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, owner, route)

    with pytest.raises(NotFound):
        cancel_booking(db, user_id=stranger.id, booking_id=booking.id, now=NOW)


def test_refund_failure_reverts_status(db, make_user, make_route, monkeypatch):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)

    def _fail(self, *args, **kwargs):
        raise StoreError("credit_user")

    monkeypatch.setattr(LedgerStore, "credit_user", _fail)

    with pytest.raises(RefundFailed):
        cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    db.refresh(booking)
    db.refresh(user)
    db.refresh(route)
    assert booking.status == BookingStatus.CONFIRMED
    assert booking.cancelled_at is None
    assert user.balance == Decimal("700.00")
    assert route.available_seats == 4


def test_seat_release_failure_still_cancels(db, make_user, make_route, monkeypatch):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)

    def _fail(self, *args, **kwargs):
        raise StoreError("release_seats")

    monkeypatch.setattr(LedgerStore, "release_seats", _fail)

    result = cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    assert result.new_balance == Decimal("1000.00")
    db.refresh(route)
    assert route.available_seats == 4


def test_status_update_failure_leaves_booking_confirmed(db, make_user, make_route, monkeypatch):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)

    def _fail(self, *args, **kwargs):
        raise StoreError("set_booking_status")

    monkeypatch.setattr(LedgerStore, "set_booking_status", _fail)

    with pytest.raises(PersistenceError):
        cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    db.refresh(booking)
    db.refresh(user)
    db.refresh(route)
    assert booking.status == BookingStatus.CONFIRMED
    assert user.balance == Decimal("700.00")
    assert route.available_seats == 4
    assert db.query(Transaction).filter(Transaction.tx_type == TransactionType.REFUND).count() == 0


def test_missing_refund_entry_does_not_undo_cancellation(db, make_user, make_route, monkeypatch, caplog):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)

    def _fail(self, *args, **kwargs):
        raise StoreError("insert_transaction")

    monkeypatch.setattr(LedgerStore, "insert_transaction", _fail)

    with caplog.at_level(logging.ERROR, logger="app.services.booking"):
        result = cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    assert result.transaction is None
    assert result.refund_amount == Decimal("300.00")
    assert result.new_balance == Decimal("1000.00")
    assert any("RECONCILE" in record.getMessage() for record in caplog.records)

    db.refresh(booking)
    db.refresh(route)
    assert booking.status == BookingStatus.CANCELLED
    assert route.available_seats == 6
    assert db.query(Transaction).filter(Transaction.tx_type == TransactionType.REFUND).count() == 0
    assert [(gap.reference, gap.tx_type) for gap in find_ledger_gaps(db)] == [
        (f"REFUND-{booking.booking_code}", TransactionType.REFUND)
    ]


def test_failed_read_after_refund_returns_cancelled_copy(db, make_user, make_route, monkeypatch):
    user = make_user(balance="1000")
    route = make_route(seats=6)
    booking = _confirmed_booking(db, user, route)
    original = LedgerStore.get_user_booking
    calls = {"n": 0}

    def _fail_second_read(self, *args, **kwargs):
        calls["n"] += 1
        if calls["n"] > 1:
            raise StoreError("get_user_booking")
        return original(self, *args, **kwargs)

    monkeypatch.setattr(LedgerStore, "get_user_booking", _fail_second_read)

    result = cancel_booking(db, user_id=user.id, booking_id=booking.id, now=NOW)

    assert inspect(result.booking).transient
    out = BookingOut.model_validate(result.booking)
    assert out.status == BookingStatus.CANCELLED
    assert out.cancelled_at is not None
    assert out.route.id == route.id
    assert result.new_balance == Decimal("1000.00")
