"""
Error types raised by the analytics engine.

Argument problems subclass ``ValueError`` so that callers catching the
builtin keep working. Numeric degeneracies (zero-magnitude or constant
vectors) are not errors; see the individual metric functions.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional


class VectorAnalyticsError(Exception):
    """Base class for all errors raised by vector_analytics."""


class DimensionMismatchError(VectorAnalyticsError, ValueError):
    """Operands have unequal component counts."""

    def __init__(self, expected: int, actual: int, context: Optional[str] = None):
        self.expected = expected
        self.actual = actual
        self.context = context
        where = f" in {context}" if context else ""
        super().__init__(
            f"Dimension mismatch{where}: expected {expected} components, got {actual}"
        )


class InsufficientDataError(VectorAnalyticsError, ValueError):
    """Not enough vectors for the requested operation."""

    def __init__(self, required: int, available: int, operation: str, detail: Optional[str] = None):
        self.required = required
        self.available = available
        self.operation = operation
        message = detail or f"{operation} requires at least {required} vectors, got {available}"
        super().__init__(message)


class InvalidVectorError(VectorAnalyticsError, ValueError):
    """A vector is empty or has non-finite components."""


class AnalysisInProgressError(VectorAnalyticsError, RuntimeError):
    """An analysis was requested while another one is running."""


@dataclass(frozen=True)
class AnalysisErrorInfo:
    """Structured description of a failed analysis, suitable for display."""

    kind: str
    operation: str
    error_type: str
    message: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "operation": self.operation,
            "error_type": self.error_type,
            "message": self.message,
            "timestamp": self.timestamp.isoformat(),
        }


class AnalysisFailedError(VectorAnalyticsError):
    """
    Raised by the orchestrator when an analysis fails.

    The triggering exception is chained as ``__cause__``; ``info`` carries
    the same details as a plain record.
    """

    def __init__(self, info: AnalysisErrorInfo):
        self.info = info
        self.kind = info.kind
        self.operation = info.operation
        super().__init__(f"{info.operation} failed: {info.error_type}: {info.message}")
