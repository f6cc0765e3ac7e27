"""Structured Logging — JSON records enriched with the running recompute's context.

Invariants:
    - Every record carries timestamp, level, logger name and message
    - Recompute fields (strategy, rows, batch_index, phase, ...) are emitted only when set
    - Fields bound with log_context() reach every record logged inside the block,
      including records from worker tasks spawned there (contextvars are copied)
    - An explicit extra= value wins over a bound context value

Design Decisions:
    - setup_logging() is called once by the host process; re-running it
      replaces the handler it installed earlier instead of stacking another
"""

import json
import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Iterator

RECOMPUTE_FIELDS = (
    "cycle", "phase", "strategy", "rows", "batch_index", "duration_ms",
    "root_ids", "template_ids", "entity", "action", "error_code",
)

_bound: ContextVar[dict[str, Any]] = ContextVar("paradigm_log_context", default={})


@contextmanager
def log_context(**fields: Any) -> Iterator[None]:
    """Bind recompute fields (cycle, phase, ...) for records logged in this block."""
    token = _bound.set({**_bound.get(), **fields})
    try:
        yield
    finally:
        _bound.reset(token)


class RecomputeContextFilter(logging.Filter):
    """Copies log_context() fields onto records that do not set them already."""

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in _bound.get().items():
            if record.__dict__.get(key) is None:
                setattr(record, key, value)
        return True


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(
            (key, record.__dict__[key])
            for key in RECOMPUTE_FIELDS
            if record.__dict__.get(key) is not None
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", fmt: str = "json") -> logging.Handler:
    """Install the engine's stream handler on the root logger."""
    for existing in list(logging.root.handlers):
        if getattr(existing, "_paradigm", False):
            logging.root.removeHandler(existing)

    handler = logging.StreamHandler()
    handler._paradigm = True
    handler.addFilter(RecomputeContextFilter())
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
        ))
    logging.root.addHandler(handler)
    logging.root.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler
