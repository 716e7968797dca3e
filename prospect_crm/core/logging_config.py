"""
Logging setup shared by the API, the import pipeline and the prospect store.

Every module logs through ``logging.getLogger(__name__)``; this module wires
those loggers to a single console handler with one line format.
"""
from __future__ import annotations

import logging
import time
from logging.config import dictConfig
from typing import Optional


_is_configured = False

LOG_FORMAT = "%(asctime)s | %(levelname)-7s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


class UTCFormatter(logging.Formatter):
    """Formatter that stamps records in UTC instead of server local time."""

    converter = time.gmtime


def configure_logging(level: Optional[str] = None, timezone: str = "local") -> None:
    """
    Configure the root logger and the ``prospect_crm`` namespace once per process.

    Args:
        level: Optional log level override (e.g., "DEBUG", "INFO").
        timezone: "local" (server timezone) or "UTC".
    """
    global _is_configured

    if _is_configured:
        return

    log_level = (level or "INFO").upper()
    if timezone.upper() == "UTC":
        formatter: dict = {"()": UTCFormatter, "fmt": LOG_FORMAT, "datefmt": LOG_DATEFMT}
    else:
        formatter = {"format": LOG_FORMAT, "datefmt": LOG_DATEFMT}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": formatter},
            "handlers": {
                "console": {
                    "class": "logging.StreamHandler",
                    "formatter": "standard",
                    "level": log_level,
                }
            },
            "root": {
                "handlers": ["console"],
                "level": log_level,
            },
            "loggers": {
                # aiohttp logs every connection at DEBUG
                "aiohttp": {"level": "WARNING"},
            },
        }
    )

    logging.getLogger("prospect_crm").setLevel(log_level)

    _is_configured = True
