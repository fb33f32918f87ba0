import logging
import sys

from app.core.config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_configured = False


def configure_logging() -> None:
    global _configured
    if _configured:
        return

    settings = get_settings()
    level = logging.getLevelName(str(settings.log_level or "INFO").upper())
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)

    # SQL echo is noisy; keep engine logs at warning unless explicitly lowered.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    _configured = True
