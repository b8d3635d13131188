"""Logging setup driven by ``log_level`` / ``log_format`` from config."""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import TextIO

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

_TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One compact JSON object per line.

    A structured ledger record passed via ``extra={"ledger_event": ...}`` is
    copied in under the ``event`` key.
    """

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, object] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        event = getattr(record, "ledger_event", None)
        if event is not None:
            payload["event"] = event
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False)


def configure_logging(
    level: str = "info",
    fmt: str = "text",
    stream: TextIO | None = None,
) -> logging.Handler:
    """Install a single handler on the ``memoria`` and ``memoria_core`` loggers.

    Output goes to *stream*, or stderr as bound at call time. Calling it
    again replaces the handler rather than stacking another one.
    """
    handler = logging.StreamHandler(stream)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    for name in ("memoria", "memoria_core"):
        log = logging.getLogger(name)
        for old in list(log.handlers):
            if getattr(old, "_memoria_handler", False):
                log.removeHandler(old)
        log.setLevel(_LEVELS.get(level, logging.INFO))
        log.addHandler(handler)
    handler._memoria_handler = True  # type: ignore[attr-defined]
    return handler
