"""
Logging configuration.

Single stderr handler with a readable format. Level is controlled by the
LOG_LEVEL setting (default INFO).
"""

import logging
import sys
from datetime import datetime

from config import get_setting


class ReadableFormatter(logging.Formatter):
    """Human-readable formatter for the Streamlit console."""

    def format(self, record):
        ts = datetime.now().strftime("%H:%M:%S")
        base = f"{ts} {record.levelname:<8} {record.name}: {record.getMessage()}"
        if record.exc_info and record.exc_info[0] is not None:
            base += "\n" + self.formatException(record.exc_info)
        return base


def configure_logging(level_name=None):
    """
    Install the root handler. Safe to call on every Streamlit rerun: existing
    handlers are replaced rather than duplicated.
    """
    level_name = level_name or get_setting('app', 'log_level', 'LOG_LEVEL', 'INFO')
    level = getattr(logging, str(level_name).upper(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(ReadableFormatter())
    handler.setLevel(level)
    root.addHandler(handler)
    root.setLevel(level)

    # Streamlit's own watchers are noisy at DEBUG
    for noisy in ("watchdog", "urllib3", "streamlit"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return level
