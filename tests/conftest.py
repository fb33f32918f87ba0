import os
from decimal import Decimal


def _set_test_env() -> None:
    defaults = {
        "APP_NAME": "UNN Shuttle Test",
        "ENVIRONMENT": "test",
        "SECRET_KEY": "test-secret",
        "ACCESS_TOKEN_EXPIRE_MINUTES": "30",
        "PASSWORD_BCRYPT_ROUNDS": "4",
        "AUTO_CREATE_TABLES": "false",
        "RATE_LIMIT_ENABLED": "false",
        "DATABASE_URL": "sqlite://",
        "CORS_ORIGINS": "http://localhost:5173,http://localhost:3000",
    }
    for key, value in defaults.items():
        os.environ.setdefault(key, value)


_set_test_env()

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.core.database import Base, get_db  # noqa: E402
from app.core.security import create_access_token  # noqa: E402
from app.main import app  # noqa: E402
from app.models import Route, User  # noqa: E402

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client(db):
    def _override_get_db():
        session = TestingSession()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = _override_get_db
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db):
    counter = {"n": 0}

    def _make(*, balance="0", email=None, hashed_password="not-a-bcrypt-hash", is_active=True):
        counter["n"] += 1
        n = counter["n"]
        user = User(
            email=email or f"rider{n}@example.com",
            full_name=f"Rider {n}",
            student_id=f"2024/{n:06d}",
            hashed_password=hashed_password,
            is_active=is_active,
            balance=Decimal(balance),
            total_rides=0,
            total_spent=Decimal("0"),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    return _make


@pytest.fixture()
def make_route(db):
    def _make(*, name="Hostel to Library", price="150", seats=6, is_active=True):
        departure, _, arrival = name.partition(" to ")
        route = Route(
            route_name=name,
            departure_location=departure,
            arrival_location=arrival or "Main Gate",
            estimated_time="15 mins",
            distance="2.5 km",
            price=Decimal(price),
            available_seats=seats,
            is_active=is_active,
        )
        db.add(route)
        db.commit()
        db.refresh(route)
        return route

    return _make


@pytest.fixture()
def auth_headers():
    def _headers(user):
        return {"Authorization": f"Bearer {create_access_token(str(user.id), user.email)}"}

    return _headers
