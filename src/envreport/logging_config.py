"""Logging setup shared by the API service and the CLI."""

from __future__ import annotations

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"

_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}


class ContextFormatter(logging.Formatter):
    """Formatter that appends ``extra={...}`` fields as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return formatted

        pairs = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        head, newline, rest = formatted.partition("\n")
        # Keep context on the message line, ahead of any traceback.
        return f"{head} | {pairs}{newline}{rest}"


def configure_logging(level: str = "INFO") -> None:
    """Send package logs to stdout at ``level``, replacing earlier handlers."""
    root = logging.getLogger("envreport")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ContextFormatter(LOG_FORMAT))

    if root.hasHandlers():
        root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
