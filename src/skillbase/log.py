"""Logging setup for the ``skillbase`` logger hierarchy.

Library modules only call ``logging.getLogger(__name__)``; handlers are
attached here, by the command line or by an embedding application.
"""

from __future__ import annotations

import json
import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "skillbase"


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": record.created,
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(level: str = "INFO", json_output: bool = False) -> logging.Logger:
    """Configure and return the ``skillbase`` logger.

    Handlers are attached once; later calls only adjust the level.

    Args:
        level: Level name such as ``"DEBUG"``. Unknown names fall back to INFO.
        json_output: Emit JSON lines instead of Rich-formatted output.

    Returns:
        The ``skillbase`` logger.
    """
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if logger.handlers:
        return logger

    handler: logging.Handler
    if json_output:
        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
    else:
        handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))

    logger.addHandler(handler)
    return logger
