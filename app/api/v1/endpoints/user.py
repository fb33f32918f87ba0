from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session, joinedload
from app.core.database import get_db
from app.dependencies import get_current_user
from app.middlewares.rate_limit import limiter
from app.models import Booking, Transaction, User
from app.schemas.booking import BookingOut
from app.schemas.common import ApiResponse
from app.schemas.transaction import TransactionOut
from app.schemas.user import ProfileOut, ProfileStats, UserOut
from app.schemas.wallet import FundingOut, FundWalletRequest
from app.services.wallet import fund_account

router = APIRouter()

RECENT_LIMIT = 5


@router.get("/profile", response_model=ApiResponse[ProfileOut])
def get_profile(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    recent_bookings = (
        db.query(Booking)
        .options(joinedload(Booking.route))
        .filter(Booking.user_id == user.id)
        .order_by(Booking.created_at.desc(), Booking.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    recent_transactions = (
        db.query(Transaction)
        .filter(Transaction.user_id == user.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    stats = ProfileStats(
        total_rides=user.total_rides or 0,
        total_spent=user.total_spent or 0,
        current_balance=user.balance or 0,
        member_since=user.created_at,
    )
    return ApiResponse(
        data=ProfileOut(
            user=UserOut.model_validate(user),
            stats=stats,
            recent_bookings=[BookingOut.model_validate(row) for row in recent_bookings],
            recent_transactions=[TransactionOut.model_validate(row) for row in recent_transactions],
        )
    )


@router.post("/fund", response_model=ApiResponse[FundingOut])
@limiter.limit("10/minute")
def fund_wallet(
    request: Request,
    payload: FundWalletRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = fund_account(db, user_id=user.id, amount=payload.amount, payment_method=payload.payment_method)
    transaction = TransactionOut.model_validate(result.transaction) if result.transaction else None
    return ApiResponse(
        data=FundingOut(new_balance=result.new_balance, reference=result.reference, transaction=transaction)
    )
