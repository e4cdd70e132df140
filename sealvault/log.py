"""Logging setup for applications embedding sealvault."""

from __future__ import annotations

from typing import Optional
import logging
import sys

from .config import get_settings

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: Optional[str] = None) -> None:
    """Send sealvault logs to stderr at ``level`` (defaults to ``settings.log_level``)."""
    if level is None:
        level = get_settings().log_level
    numeric = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric, format=LOG_FORMAT, stream=sys.stderr)
    logging.getLogger("sealvault").setLevel(numeric)
