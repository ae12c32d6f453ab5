from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Optional

SERVICE_NAME = "test-tracker"
CONTEXT_PREFIX = "ctx_"


class JSONFormatter(logging.Formatter):
    """One JSON object per record; ``ctx_*`` extras are grouped under ``context``."""

    def __init__(self, service: str = SERVICE_NAME, env: Optional[str] = None) -> None:
        super().__init__()
        self.service = service
        self.env = env

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if self.env:
            log_entry["env"] = self.env
        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "message": str(record.exc_info[1]),
            }
        extra = {k: v for k, v in record.__dict__.items() if k.startswith(CONTEXT_PREFIX)}
        if extra:
            log_entry["context"] = extra
        return json.dumps(log_entry, default=str)


def log_context(**fields: Any) -> dict[str, Any]:
    """Build an ``extra=`` mapping, prefixing keys and dropping None values."""
    return {f"{CONTEXT_PREFIX}{k}": v for k, v in fields.items() if v is not None}


def setup_logging(level: str = "INFO", env: Optional[str] = None) -> None:
    """Send JSON logs to stdout. Calling it again is a no-op."""
    root = logging.getLogger()
    if any(isinstance(h.formatter, JSONFormatter) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter(env=env))
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Reduce noise from third-party libraries
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("alembic").setLevel(logging.WARNING)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        logging.getLogger(name).propagate = True


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
