from fastapi import APIRouter
from app.api.v1.endpoints import auth, user, shuttle_routes, bookings, transactions

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(user.router, prefix="/user", tags=["user"])
router.include_router(shuttle_routes.router, prefix="/routes", tags=["routes"])
router.include_router(bookings.router, prefix="/bookings", tags=["bookings"])
router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
