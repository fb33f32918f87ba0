from decimal import Decimal
from app.core.database import SessionLocal
from app.models import Route


DEFAULT_SEATS = 16

CAMPUS_ROUTES = [
    {"route_name": "Hostel to Library", "departure_location": "Hostel", "arrival_location": "Library", "price": Decimal("150"), "estimated_time": "15 mins", "distance": "2.5 km"},
    {"route_name": "Library to Faculty", "departure_location": "Library", "arrival_location": "Faculty", "price": Decimal("100"), "estimated_time": "10 mins", "distance": "1.8 km"},
    {"route_name": "Faculty to Main Gate", "departure_location": "Faculty", "arrival_location": "Main Gate", "price": Decimal("200"), "estimated_time": "20 mins", "distance": "3.2 km"},
    {"route_name": "Main Gate to Hostel", "departure_location": "Main Gate", "arrival_location": "Hostel", "price": Decimal("250"), "estimated_time": "25 mins", "distance": "4.1 km"},
    {"route_name": "Hostel to Faculty", "departure_location": "Hostel", "arrival_location": "Faculty", "price": Decimal("180"), "estimated_time": "18 mins", "distance": "2.9 km"},
    {"route_name": "Library to Main Gate", "departure_location": "Library", "arrival_location": "Main Gate", "price": Decimal("120"), "estimated_time": "12 mins", "distance": "2.1 km"},
]


def main():
    db = SessionLocal()
    try:
        added = 0
        for route in CAMPUS_ROUTES:
            existing = db.query(Route).filter(Route.route_name == route["route_name"]).first()
            if not existing:
                db.add(Route(available_seats=DEFAULT_SEATS, is_active=True, **route))
                added += 1
        db.commit()
        print(f"Seeded {added} route(s).")
    finally:
        db.close()


if __name__ == "__main__":
    main()
