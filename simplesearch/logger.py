"""Structured key=value logging to standard output."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime
from typing import Mapping

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
    "taskName",
}
_LEVEL_NAMES = {logging.WARNING: "WARN", logging.CRITICAL: "ERROR+4"}


def _quote(value: str) -> str:
    if not value or any(ch.isspace() or ch in '="' or not ch.isprintable() for ch in value):
        return json.dumps(value, ensure_ascii=False)
    return value


class _TextFormatter(logging.Formatter):
    """Render records as ``time=... level=... msg=... key=value`` lines."""

    def format(self, record: logging.LogRecord) -> str:
        moment = datetime.fromtimestamp(record.created).astimezone()
        fields = {
            "time": moment.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": _LEVEL_NAMES.get(record.levelno, record.levelname),
            "msg": record.getMessage(),
        }
        fields.update(
            (key, value) for key, value in record.__dict__.items() if key not in _RESERVED
        )
        return " ".join(f"{key}={_quote(str(value))}" for key, value in fields.items())


def new_logger(envs: Mapping[str, str]) -> logging.Logger:
    """Create the application logger for the environment named in ``envs``.

    "production" and "development" have no output configured yet and discard
    records; any other environment logs from DEBUG upwards to standard output.
    """
    logger = logging.Logger("simplesearch")
    logger.propagate = False
    if envs.get("env", "") in ("production", "development"):
        logger.addHandler(logging.NullHandler())
        return logger
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_TextFormatter())
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    return logger