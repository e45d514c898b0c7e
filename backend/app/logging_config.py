"""Configuration du logging (texte lisible ou JSON lines)."""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

__all__ = ["JsonFormatter", "configure_logging"]

_TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s - %(message)s"

# Champs standards d'un LogRecord, à ne pas recopier dans "extra"
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Une ligne JSON par record, avec les champs passés via ``extra=``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in record.__dict__.items():
            if key not in _RESERVED and not key.startswith("_"):
                payload[key] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", json_output: bool = False) -> None:
    """
    Configure le logger racine du backend.

    Idempotent : rappeler la fonction remplace le handler existant
    au lieu d'en empiler un nouveau.
    """
    root = logging.getLogger("backend")
    root.setLevel(level.upper())

    for handler in list(root.handlers):
        if getattr(handler, "_ledger_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if json_output else logging.Formatter(_TEXT_FORMAT))
    handler._ledger_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
