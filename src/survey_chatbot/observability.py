"""Logging setup for the survey chatbot runtime."""

from __future__ import annotations

import logging
import os
from typing import Optional


_initialized = False

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _resolve_level(level: Optional[str]) -> int:
    raw = (level or os.getenv("SURVEY_LOG_LEVEL", "INFO")).strip().upper()
    resolved = logging.getLevelName(raw)
    if isinstance(resolved, int):
        return resolved
    logging.warning("Unknown log level '%s'; falling back to INFO.", raw)
    return logging.INFO


def initialize_logging(level: Optional[str] = None) -> bool:
    """Configure root logging once per process."""

    global _initialized
    if _initialized:
        return False

    logging.basicConfig(level=_resolve_level(level), format=LOG_FORMAT)
    _initialized = True
    logging.getLogger(__name__).debug("Logging initialized.")
    return True
