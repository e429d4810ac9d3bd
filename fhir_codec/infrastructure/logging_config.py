"""Logging setup for the codec library and the fhircodec CLI.

Two output styles are supported: one JSON object per line for log
shippers, and a plain single-line format for terminals.

Security Impact:
    - Codecs log types, paths and counts; document content never reaches a record
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# Record attributes passed through ``extra=`` that are copied into JSON output.
CONTEXT_FIELDS = ("codec", "resource_type")

TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
TEXT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class StructuredFormatter(logging.Formatter):
    """Renders each record as a single JSON object."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def setup_logging(use_json: bool = False, log_level: str = "INFO") -> None:
    """Replace the root logger's handlers with a single stderr handler.

    Converted documents go to stdout, so log output is kept on stderr.

    Parameters:
        use_json: Emit JSON lines instead of plain text
        log_level: Level name, case-insensitive; unknown names fall back to INFO
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.setFormatter(
        StructuredFormatter() if use_json else logging.Formatter(TEXT_FORMAT, datefmt=TEXT_DATE_FORMAT)
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)
