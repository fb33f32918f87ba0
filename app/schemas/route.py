from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from app.schemas.common import Money


class RouteSummary(BaseModel):
    id: int
    route_name: str
    departure_location: str
    arrival_location: str
    price: Money
    estimated_time: str | None = None

    class Config:
        from_attributes = True


class RouteOut(RouteSummary):
    distance: str | None = None
    available_seats: int
    is_active: bool
    created_at: Optional[datetime] = None
