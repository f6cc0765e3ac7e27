"""Error Hierarchy — typed, categorized exceptions for engine failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Persistence failures are never retried inside the engine
    - to_dict() produces the structured envelope callers log or report

Design Decisions:
    - Single hierarchy with ParadigmError base: callers catch one type
    - ErrorContext as dataclass: carries recompute scope without coupling to logging
    - Malformed slot references are not errors: the generator resolves them via fallback
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and caller handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories."""
    VALIDATION = "validation"
    DATABASE = "database"
    PARTIAL_FAILURE = "partial_failure"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Scope of the recompute cycle an error belongs to."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    strategy: str | None = None
    batch_index: int | None = None
    root_ids: list[int] | None = None
    template_ids: list[int] | None = None
    debug_info: dict[str, Any] | None = None


class ParadigmError(Exception):
    """Base exception for all engine errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()

    def details(self) -> dict[str, Any]:
        """Error-specific fields for the envelope."""
        return {}

    def to_dict(self) -> dict:
        """Structured error envelope for logs and job reports."""
        ctx = self.context
        envelope = {
            "code": self.code,
            "message": self.message,
            "category": self.category.value,
            "severity": self.severity.value,
            "timestamp": ctx.timestamp.isoformat(),
            "context": {
                key: value
                for key, value in (
                    ("strategy", ctx.strategy),
                    ("batch_index", ctx.batch_index),
                    ("root_ids", ctx.root_ids),
                    ("template_ids", ctx.template_ids),
                )
                if value is not None
            },
        }
        envelope.update(self.details())
        return {"error": envelope}


# ─── Configuration Errors ───────────────────────────────────────

class UnknownStrategyError(ParadigmError):
    """No BulkWriter is registered for the requested strategy."""
    def __init__(self, strategy: str, context: ErrorContext | None = None):
        super().__init__(
            f"No bulk writer registered for strategy '{strategy}'",
            "UNKNOWN_STRATEGY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context,
        )
        self.strategy = strategy

    def details(self) -> dict[str, Any]:
        return {"strategy": self.strategy}


# ─── Persistence Errors ─────────────────────────────────────────

class PersistenceError(ParadigmError):
    """A bulk insert, delete or COPY against the store failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Persistence {operation} failed: {message}",
            "PERSISTENCE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context,
        )
        self.operation = operation

    def details(self) -> dict[str, Any]:
        return {"operation": self.operation}


class PartialBatchFailure(ParadigmError):
    """One or more batches failed while sibling batches were committed.

    The first failure is chained as __cause__ and kept on first_error.
    """
    def __init__(
        self,
        first_error: BaseException,
        succeeded: int,
        failed: int,
        skipped: int,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{failed} batch(es) failed, {succeeded} committed, "
            f"{skipped} not started: {first_error}",
            "PARTIAL_BATCH_FAILURE", ErrorCategory.PARTIAL_FAILURE,
            ErrorSeverity.CRITICAL, context,
        )
        self.first_error = first_error
        self.succeeded = succeeded
        self.failed = failed
        self.skipped = skipped

    def details(self) -> dict[str, Any]:
        return {
            "batches": {
                "succeeded": self.succeeded,
                "failed": self.failed,
                "skipped": self.skipped,
            },
            "first_error": getattr(self.first_error, "code", type(self.first_error).__name__),
        }
