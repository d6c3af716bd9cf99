"""
Logging setup for forecast-prep.

``configure_logging(config)`` is called once by the CLI before any pipeline
work.  Library modules only ever do ``logging.getLogger(__name__)``, so
importing ``forecast_prep`` from a notebook never reconfigures the host's
logging.

With ``json_format = true`` under ``[logging]`` every record becomes one
JSON object per line::

    {"ts": "2026-02-24T15:00:00Z", "level": "WARNING",
     "logger": "forecast_prep.features.pipeline", "msg": "Dropped 1 record(s) ..."}
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from forecast_prep.config import LoggingConfig

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

# Attributes every LogRecord carries; anything else came in via ``extra=``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_QUIET_LOGGERS = ("pyarrow",)


class JsonLineFormatter(logging.Formatter):
    """Render a record as a single JSON line, merging ``extra=`` fields in."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: dict = {
            "ts": stamp.strftime(TIMESTAMP_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(
            (key, val) for key, val in vars(record).items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def _handlers(config: "LoggingConfig") -> list[logging.Handler]:
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path, encoding="utf-8"))
    return handlers


def configure_logging(config: "LoggingConfig") -> None:
    """Install stdout (and optional file) handlers on the root logger."""
    level = logging.getLevelName(config.level)
    formatter: logging.Formatter = (
        JsonLineFormatter() if config.json_format
        else logging.Formatter(TEXT_FORMAT, datefmt=TIMESTAMP_FORMAT)
    )

    handlers = _handlers(config)
    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers, force=True)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
