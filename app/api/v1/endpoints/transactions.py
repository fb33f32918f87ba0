from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload
from app.core.database import get_db
from app.dependencies import get_current_user
from app.models import Transaction, User
from app.schemas.common import ApiResponse
from app.schemas.transaction import TransactionWithBookingOut

router = APIRouter()


@router.get("", response_model=ApiResponse[list[TransactionWithBookingOut]])
def list_transactions(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(Transaction)
        .options(joinedload(Transaction.booking))
        .filter(Transaction.user_id == user.id)
        .order_by(Transaction.created_at.desc(), Transaction.id.desc())
        .all()
    )
    return ApiResponse(data=[TransactionWithBookingOut.model_validate(row) for row in rows])
