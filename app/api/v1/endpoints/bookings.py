from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, joinedload
from app.core.database import get_db
from app.core.exceptions import NotFound
from app.dependencies import get_current_user
from app.middlewares.rate_limit import limiter
from app.models import Booking, User
from app.schemas.booking import BookingCancelled, BookingCreated, BookingOut, CreateBookingRequest
from app.schemas.common import ApiResponse
from app.schemas.route import RouteSummary
from app.services.booking import cancel_booking, create_booking

router = APIRouter()


@router.get("", response_model=ApiResponse[list[BookingOut]])
def list_bookings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(Booking)
        .options(joinedload(Booking.route))
        .filter(Booking.user_id == user.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .all()
    )
    return ApiResponse(data=[BookingOut.model_validate(row) for row in rows])


@router.post("", response_model=ApiResponse[BookingCreated], status_code=201)
@limiter.limit("5/minute")
def book_seats(
    request: Request,
    payload: CreateBookingRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = create_booking(
        db,
        user_id=user.id,
        route_id=payload.route_id,
        pickup_location=payload.pickup_location,
        dropoff_location=payload.dropoff_location,
        departure_time=payload.departure_time,
        number_of_seats=payload.number_of_seats,
    )
    return ApiResponse(
        data=BookingCreated(
            booking=BookingOut.model_validate(result.booking),
            new_balance=result.new_balance,
            route=RouteSummary.model_validate(result.route),
        )
    )


@router.get("/{booking_id}", response_model=ApiResponse[BookingOut])
def get_booking(booking_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    booking = (
        db.query(Booking)
        .options(joinedload(Booking.route))
        .filter(Booking.id == booking_id, Booking.user_id == user.id)
        .first()
    )
    if not booking:
        raise NotFound("Booking not found")
    return ApiResponse(data=BookingOut.model_validate(booking))


@router.patch("/{booking_id}/cancel", response_model=ApiResponse[BookingCancelled])
def cancel(booking_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    result = cancel_booking(db, user_id=user.id, booking_id=booking_id)
    return ApiResponse(
        data=BookingCancelled(
            refund_amount=result.refund_amount,
            new_balance=result.new_balance,
            booking=BookingOut.model_validate(result.booking),
        )
    )
