import secrets
import string
import time
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP

_ALPHABET = string.ascii_uppercase + string.digits
_CENTS = Decimal("0.01")


def _random_suffix(length: int = 6) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_booking_code(now: datetime | None = None) -> str:
    # BK-YYYYMMDD-XXXXXX
    stamp = (now or datetime.now(timezone.utc)).strftime("%Y%m%d")
    return f"BK-{stamp}-{_random_suffix()}"


def generate_transaction_reference() -> str:
    # TXN-<epoch ms>-XXXXXX
    return f"TXN-{int(time.time() * 1000)}-{_random_suffix()}"


def refund_reference(booking_code: str) -> str:
    return f"REFUND-{booking_code}"


def to_money(value) -> Decimal:
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(_CENTS, rounding=ROUND_HALF_UP)
