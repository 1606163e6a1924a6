"""
Logging configuration.

Modules log through ``logging.getLogger(__name__)``; this only wires the
root handler once at startup.
"""

import logging
import sys

from truk.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Attach a stdout handler to the root logger."""
    root = logging.getLogger()
    root.setLevel(level or settings.LOG_LEVEL)

    if not any(getattr(h, "_truk", False) for h in root.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._truk = True  # type: ignore[attr-defined]
        root.addHandler(handler)

    # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
