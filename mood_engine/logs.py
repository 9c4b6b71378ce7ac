#!/usr/bin/env python3
"""
Logging helpers.

All modules log through `get_logger(__name__)`. Structured context goes in
`extra=` (conversation_id, subject_id, calibration_id, ...). With
DEBUG_MOOD=1 a stderr handler writes one JSON object per record, extras
included; otherwise records propagate to whatever the host application
configured.
"""
import json
import logging
import os
import sys

DEBUG = os.getenv("DEBUG_MOOD", "0") == "1"
ROOT_LOGGER = "mood_engine"

# attributes every LogRecord has; anything else came in through extra=
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Format a record as a single JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        obj = {
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for k, v in record.__dict__.items():
            if k not in _RESERVED and not k.startswith("_"):
                obj[k] = v
        if record.exc_info:
            obj["exc"] = self.formatException(record.exc_info)
        return json.dumps(obj, ensure_ascii=False, default=str)


def _configure_root() -> None:
    root = logging.getLogger(ROOT_LOGGER)
    if getattr(root, "_mood_configured", False):
        return
    root.addHandler(logging.NullHandler())
    if DEBUG:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(JsonFormatter())
        root.addHandler(handler)
        root.setLevel(logging.DEBUG)
    root._mood_configured = True  # type: ignore[attr-defined]


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the engine's namespace."""
    _configure_root()
    if not name.startswith(ROOT_LOGGER):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def dlog(obj) -> None:
    """Dump an object as JSON to stderr when DEBUG_MOOD=1."""
    if DEBUG:
        sys.stderr.write(json.dumps(obj, ensure_ascii=False, default=str) + "\n")
