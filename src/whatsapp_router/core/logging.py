"""
Logging setup.

Modules log through ``logging.getLogger(__name__)`` and pass identifiers
in ``extra``; this only wires the root handler once per process.
"""

import logging
import sys

from whatsapp_router.core.settings import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

_configured = False


def setup_logging(level: str | None = None) -> None:
    """Configure the root logger. Safe to call multiple times."""
    global _configured

    if _configured:
        return

    level_name = (level or get_settings().LOG_LEVEL).upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)

    _configured = True
