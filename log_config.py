"""
Singapore Property Comparison Calculator - Logging

Console logging for the app and the calculation engine, as plain text or
one JSON object per line.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Engine modules whose loggers follow the configured level
ENGINE_LOGGERS = ("calculations", "policy", "models", "charts")

TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(level: str = "INFO", format_type: str = "standard") -> None:
    """
    Send log records to stderr at the given level.

    Streamlit reruns the script on every interaction, so any handlers
    already on the root logger are replaced rather than added to.

    Args:
        level: Level name (DEBUG, INFO, ...); unknown names fall back to INFO
        format_type: "standard" for text lines, "json" for JSON lines
    """
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    if not isinstance(log_level, int):
        log_level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(log_level)
    if format_type == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(fmt=TEXT_FORMAT, datefmt=DATE_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in ENGINE_LOGGERS:
        logging.getLogger(name).setLevel(log_level)
    logging.getLogger("streamlit").setLevel(logging.WARNING)
