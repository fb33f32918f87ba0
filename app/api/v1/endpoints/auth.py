import logging
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from app.core.security import hash_password, verify_password, create_access_token
from app.core.database import get_db
from app.dependencies import get_current_user
from app.middlewares.rate_limit import limiter
from app.models import User
from app.schemas.auth import AuthOut, LoginRequest, RegisterRequest
from app.schemas.common import ApiResponse
from app.schemas.user import UserOut

router = APIRouter()
logger = logging.getLogger(__name__)


def _mask_email(value: str) -> str:
    try:
        local, domain = value.split("@", 1)
    except ValueError:
        return "***"
    if not local:
        return f"***@{domain}"
    return f"{local[:2]}***@{domain}"


def _auth_response(user: User) -> ApiResponse[AuthOut]:
    token = create_access_token(str(user.id), user.email)
    return ApiResponse(data=AuthOut(token=token, user=UserOut.model_validate(user)))


@router.post("/register", response_model=ApiResponse[AuthOut], status_code=201)
@limiter.limit("10/minute")
def register(request: Request, payload: RegisterRequest, db: Session = Depends(get_db)):
    existing = (
        db.query(User)
        .filter(or_(User.email == payload.email, User.student_id == payload.student_id))
        .first()
    )
    if existing:
        raise HTTPException(status_code=400, detail="User with this email or student ID already exists")

    user = User(
        email=payload.email,
        full_name=payload.full_name.strip(),
        student_id=payload.student_id,
        phone_number=payload.phone_number,
        department=payload.department,
        level=payload.level,
        hashed_password=hash_password(payload.password),
        balance=0,
        total_rides=0,
        total_spent=0,
        is_active=True,
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same identity.
        db.rollback()
        raise HTTPException(status_code=400, detail="User with this email or student ID already exists")
    db.refresh(user)

    logger.info("Registered user id=%s email=%s", user.id, _mask_email(user.email))
    return _auth_response(user)


@router.post("/login", response_model=ApiResponse[AuthOut])
@limiter.limit("10/minute")
def login(request: Request, payload: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == payload.email).first()
    if not user or not verify_password(payload.password, user.hashed_password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=403, detail="User is inactive")
    return _auth_response(user)


@router.get("/me", response_model=ApiResponse[UserOut])
def me(user: User = Depends(get_current_user)):
    return ApiResponse(data=UserOut.model_validate(user))
