"""Structured JSON logging configuration."""

import logging
import sys

from pythonjsonlogger import jsonlogger

from quorum_escrow.core.config import settings

NOISY_LOGGERS = ("uvicorn.access", "httpx", "sqlalchemy.engine", "aiosqlite")


def setup_logging(level: str | None = None) -> None:
    """Send every record to stdout as one JSON object, tagged with the contract name."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            rename_fields={"asctime": "timestamp", "levelname": "level"},
            static_fields={"service": settings.contract_name},
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel((level or settings.log_level).upper())

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
