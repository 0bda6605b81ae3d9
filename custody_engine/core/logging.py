"""Process-wide logging setup."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"

_configured = False


def configure_logging(debug: bool = False) -> None:
    """Install a single stream handler on the root logger (idempotent)."""
    global _configured
    level = logging.DEBUG if debug else logging.INFO
    root = logging.getLogger()
    root.setLevel(level)
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    # httpx logs every request line at INFO, which includes quote API keys.
    logging.getLogger("httpx").setLevel(logging.WARNING)
    _configured = True


__all__ = ["configure_logging"]
