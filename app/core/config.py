from decimal import Decimal
from functools import lru_cache
import json

from pydantic_settings import BaseSettings, SettingsConfigDict


def parse_cors_origins(value: str) -> list[str]:
    if not value:
        return []

    parsed: list[str]
    raw = value.strip()
    if raw.startswith("["):
        try:
            items = json.loads(raw)
            parsed = [str(item).strip() for item in items if str(item).strip()]
        except (TypeError, ValueError):
            parsed = []
    else:
        parsed = [origin.strip() for origin in raw.split(",") if origin.strip()]

    # Preserve order and remove duplicates.
    return list(dict.fromkeys(parsed))


class Settings(BaseSettings):
    app_name: str = "UNN Shuttle"
    environment: str = "development"
    api_v1_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # Security
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24
    password_bcrypt_rounds: int = 12

    # Database
    database_url: str
    db_pool_size: int = 5
    db_max_overflow: int = 5
    db_pool_timeout: int = 15
    db_pool_recycle: int = 1200
    db_pool_pre_ping: bool = True

    # Booking and wallet rules
    cancellation_cutoff_hours: int = 2
    max_seats_per_booking: int = 10
    min_funding_amount: Decimal = Decimal("100")
    max_funding_amount: Decimal = Decimal("1000000")

    # CORS
    cors_origins: str = "http://localhost:3000,http://127.0.0.1:3000"
    auto_create_tables: bool = False

    # Rate limiting (slowapi); disable for tests and local scripts.
    rate_limit_enabled: bool = True

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def is_production(self) -> bool:
        return (self.environment or "").lower() == "production"


@lru_cache
def get_settings() -> Settings:
    return Settings()
