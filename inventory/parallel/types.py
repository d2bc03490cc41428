"""
inventory/parallel/types.py - Parallel execution result types

Every unit of parallel work yields a TaskResult: either data or a TaskError,
never an exception that unwinds past the executor.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    """Error classification used for retry and reporting decisions"""

    THROTTLING = "throttling"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    UNKNOWN = "unknown"


RETRYABLE_CATEGORIES = frozenset(
    {
        ErrorCategory.THROTTLING,
        ErrorCategory.NETWORK,
        ErrorCategory.TIMEOUT,
        ErrorCategory.SERVICE_ERROR,
    }
)


@dataclass
class TaskError:
    """Failure of a single task

    Attributes:
        identifier: What the task worked on (account id, service name, ...)
        region: Target region
        category: Error category
        error_code: Provider error code or exception class name
        message: Error message
        retries: Retries attempted before giving up
        original_exception: The raised exception, if any
        timestamp: When the failure was recorded (UTC)
    """

    identifier: str
    region: str
    category: ErrorCategory
    error_code: str
    message: str
    retries: int = 0
    original_exception: Exception | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def is_retryable(self) -> bool:
        return self.category in RETRYABLE_CATEGORIES

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": self.identifier,
            "region": self.region,
            "category": self.category.value,
            "error_code": self.error_code,
            "message": self.message,
            "retries": self.retries,
            "timestamp": self.timestamp.isoformat(),
        }

    def __str__(self) -> str:
        return f"[{self.identifier}/{self.region}] {self.error_code}: {self.message}"


@dataclass
class TaskResult(Generic[T]):
    """Outcome of a single task: data on success, error on failure"""

    identifier: str
    region: str
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        status = "OK" if self.success else "FAIL"
        return f"[{self.identifier}/{self.region}] {status} ({self.duration_ms:.0f}ms)"


@dataclass(frozen=True)
class ParallelExecutionResult(Generic[T]):
    """Joined results of a parallel run"""

    results: tuple[TaskResult[T], ...] = ()

    @property
    def successful(self) -> list[TaskResult[T]]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.success]

    @property
    def total_count(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def error_count(self) -> int:
        return len(self.failed)

    @property
    def total_duration_ms(self) -> float:
        return sum(r.duration_ms for r in self.results)

    def has_any_success(self) -> bool:
        return self.success_count > 0

    def has_any_failure(self) -> bool:
        return self.error_count > 0

    def has_failures_only(self) -> bool:
        return self.total_count > 0 and self.success_count == 0

    def get_data(self) -> list[T]:
        """Data of successful tasks (None excluded)"""
        return [r.data for r in self.successful if r.data is not None]

    def get_errors(self) -> list[TaskError]:
        return [r.error for r in self.failed if r.error is not None]

    def get_errors_by_category(self) -> dict[ErrorCategory, list[TaskError]]:
        grouped: dict[ErrorCategory, list[TaskError]] = {}
        for error in self.get_errors():
            grouped.setdefault(error.category, []).append(error)
        return grouped

    def get_error_summary(self, max_per_category: int = 5) -> str:
        """Multi-line summary of failures, grouped by category"""
        errors = self.get_errors()
        if not errors:
            return ""

        lines = [f"{len(errors)} task(s) failed"]
        for category, items in self.get_errors_by_category().items():
            lines.append(f"  [{category.value}] {len(items)}")
            for error in items[:max_per_category]:
                lines.append(f"    - {error.identifier}/{error.region}: {error.message}")
            if len(items) > max_per_category:
                lines.append(f"    ... and {len(items) - max_per_category} more")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total_count,
            "success": self.success_count,
            "failed": self.error_count,
            "total_duration_ms": self.total_duration_ms,
            "errors": [e.to_dict() for e in self.get_errors()],
        }
