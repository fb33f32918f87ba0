import importlib.util
import logging
from urllib.parse import urlparse

from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import get_settings


class Base(DeclarativeBase):
    pass


settings = get_settings()
logger = logging.getLogger(__name__)

# Floors for the Postgres pool. The dashboard loads profile, bookings and
# transactions in parallel, so anything smaller queues requests into 503s.
MIN_POOL_SIZE = 5
MIN_MAX_OVERFLOW = 5
MIN_POOL_TIMEOUT = 8

_LOCAL_DB_HOSTS = {"localhost", "127.0.0.1", "db"}


def _resolve_database_url(database_url: str) -> str:
    if database_url.startswith("postgres://"):
        database_url = "postgresql://" + database_url[len("postgres://"):]
    if not database_url.startswith("postgresql://"):
        return database_url
    # Fall back to the psycopg 3 driver when only that one is installed.
    if importlib.util.find_spec("psycopg2") is None and importlib.util.find_spec("psycopg") is not None:
        return "postgresql+psycopg://" + database_url[len("postgresql://"):]
    return database_url


def _build_connect_args(database_url: str) -> dict:
    parsed = urlparse(database_url)
    if parsed.scheme.startswith("sqlite"):
        return {"check_same_thread": False}
    if not parsed.scheme.startswith("postgresql"):
        return {}

    args = {"keepalives": 1, "keepalives_idle": 30, "keepalives_interval": 10, "keepalives_count": 5}
    if parsed.hostname not in _LOCAL_DB_HOSTS:
        args["sslmode"] = "require"
    return args


def _build_pool_kwargs(database_url: str) -> dict:
    if not database_url.startswith("postgresql"):
        return {}

    requested = (int(settings.db_pool_size), int(settings.db_max_overflow), int(settings.db_pool_timeout))
    pool_size, max_overflow, pool_timeout = (
        max(MIN_POOL_SIZE, requested[0]),
        max(MIN_MAX_OVERFLOW, requested[1]),
        max(MIN_POOL_TIMEOUT, requested[2]),
    )
    if (pool_size, max_overflow, pool_timeout) != requested:
        logger.warning(
            "Raised DB pool settings to floor: size=%s overflow=%s timeout=%s (requested %s/%s/%s)",
            pool_size,
            max_overflow,
            pool_timeout,
            *requested,
        )

    return {
        "pool_pre_ping": settings.db_pool_pre_ping,
        "pool_recycle": settings.db_pool_recycle,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
        "pool_use_lifo": True,
    }


database_url = _resolve_database_url(str(settings.database_url))

engine = create_engine(
    database_url,
    connect_args=_build_connect_args(database_url),
    **_build_pool_kwargs(database_url),
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
