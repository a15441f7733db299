"""Logging helpers."""

from __future__ import annotations

import logging
from typing import Optional

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s - %(message)s"

_LOGGING_CONFIGURED = False


def configure_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure the root logger once per process; later calls only adjust the level."""
    global _LOGGING_CONFIGURED
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    if _LOGGING_CONFIGURED:
        logging.getLogger().setLevel(numeric_level)
        return
    if log_file:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT, filename=log_file, encoding="utf-8")
    else:
        logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    # paramiko logs every transport negotiation at INFO
    logging.getLogger("paramiko").setLevel(max(numeric_level, logging.WARNING))
    _LOGGING_CONFIGURED = True
