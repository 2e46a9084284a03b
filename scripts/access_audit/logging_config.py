"""Structured JSON logging for report runs.

Every line is one JSON object. Report context attached through ``extra=``
(organisation, repository, grantee and team counts, run id, timing) is
lifted to top-level keys so runs can be filtered without parsing messages.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import IO, Optional

# Report context keys, in the order they appear in the output
CONTEXT_FIELDS = (
    "run_id",
    "org",
    "entity_type",
    "resource",
    "grantees",
    "teams",
    "repositories",
    "records",
    "duration_s",
)


class JsonFormatter(logging.Formatter):
    """Emit one JSON object per log line, report context first-class."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (key, getattr(record, key))
            for key in CONTEXT_FIELDS
            if getattr(record, key, None) is not None
        )
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Route the access_audit loggers to ``stream`` (stderr) as JSON."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonFormatter())
    root = logging.getLogger("access_audit")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()
    root.addHandler(handler)
    root.propagate = False
