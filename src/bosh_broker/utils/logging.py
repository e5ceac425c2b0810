"""Logging helpers."""

from __future__ import annotations

import logging
import os
from typing import Optional

_LOGGING_CONFIGURED = False


def get_logger(name: Optional[str] = None) -> logging.Logger:
    global _LOGGING_CONFIGURED
    if not _LOGGING_CONFIGURED:
        level_name = os.getenv("BOSH_BROKER_LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level_name, logging.INFO),
            format="[%(asctime)s] %(levelname)s %(name)s - %(message)s",
        )
        # urllib3 logs every request at debug level
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        _LOGGING_CONFIGURED = True
    return logging.getLogger(name)
