"""Logging setup for the diff engine and its CLI.

Two output modes are supported:

* plain text, ``"<time>  <LEVEL>  <logger>  <message>"``;
* single-line JSON, one object per record, for log aggregators that index
  fields without regex parsing.

Output schema per JSON line::

    {
        "timestamp": "2025-05-15T12:34:56.789012+00:00",
        "level": "INFO",
        "logger": "diff_engine.versioning",
        "message": "compared versions 3 -> 4",
        "comparison": { ... },       // present when passed via extra=
        "exc_info": "Traceback ..."  // present only on exceptions
    }
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from diff_engine.config import Settings

TEXT_FORMAT = "%(asctime)s  %(levelname)-8s  %(name)s  %(message)s"


class JSONFormatter(logging.Formatter):
    """Format log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Structured comparison summary passed via ``extra={"comparison": ...}``.
        comparison = getattr(record, "comparison", None)
        if comparison is not None:
            payload["comparison"] = comparison

        if record.exc_info and record.exc_info[0] is not None:
            payload["exc_info"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(payload, default=str, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """Install a root handler according to *settings*.

    Replaces any handlers already attached to the root logger so repeated
    calls (e.g. one per CLI invocation in tests) do not stack output.
    """
    level = logging.DEBUG if settings.debug else getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    if settings.structured_logging:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)
