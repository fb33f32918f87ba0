from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.database import get_db
from app.core.exceptions import NotFound
from app.models import Route
from app.schemas.common import ApiResponse
from app.schemas.route import RouteOut

router = APIRouter()


@router.get("", response_model=ApiResponse[list[RouteOut]])
def list_routes(db: Session = Depends(get_db)):
    routes = db.query(Route).filter(Route.is_active.is_(True)).order_by(Route.route_name.asc()).all()
    return ApiResponse(data=[RouteOut.model_validate(route) for route in routes])


@router.get("/{route_id}", response_model=ApiResponse[RouteOut])
def get_route(route_id: int, db: Session = Depends(get_db)):
    route = db.query(Route).filter(Route.id == route_id, Route.is_active.is_(True)).first()
    if not route:
        raise NotFound("Route not found")
    return ApiResponse(data=RouteOut.model_validate(route))
