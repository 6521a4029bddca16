"""
geco/parallel/types.py - Task result types

Every dispatched task reports exactly one ``TaskResult``. The coordinator
wraps the collected results in a ``ParallelExecutionResult`` for merging
and error reporting.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorCategory(Enum):
    """Error classification used for logging and retry decisions"""

    THROTTLING = "throttling"
    ACCESS_DENIED = "access_denied"
    NOT_FOUND = "not_found"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EXPIRED_TOKEN = "expired_token"
    INVALID_REQUEST = "invalid_request"
    SERVICE_ERROR = "service_error"
    UNKNOWN = "unknown"


@dataclass
class TaskError:
    """Failure details of a single task

    Attributes:
        identifier: Project ID the task was scoped to
        resource: Resource type ("instances", "instance_groups", ...)
        category: Error classification
        error_code: HTTP status or exception class name
        message: Error message
        retries: Retries spent before giving up
        original_exception: The exception that ended the task
        timestamp: When the failure was recorded
    """

    identifier: str
    resource: str
    category: ErrorCategory
    error_code: str
    message: str
    retries: int = 0
    original_exception: BaseException | None = None
    timestamp: datetime = field(default_factory=datetime.now)

    def __str__(self) -> str:
        return f"[{self.category.value}] {self.identifier}/{self.resource}: {self.error_code} - {self.message}"


@dataclass
class TaskResult(Generic[T]):
    """The single report of one dispatched task

    ``data`` is None when the task failed ("no data").
    """

    identifier: str
    resource: str
    success: bool
    data: T | None = None
    error: TaskError | None = None
    duration_ms: float = 0.0

    def __str__(self) -> str:
        status = "OK" if self.success else "FAILED"
        return f"{self.identifier}/{self.resource}: {status} ({self.duration_ms:.0f}ms)"


@dataclass(frozen=True)
class ParallelExecutionResult(Generic[T]):
    """All task reports of one dispatch"""

    results: Sequence[TaskResult[T]] = ()

    @property
    def successful(self) -> list[TaskResult[T]]:
        return [r for r in self.results if r.success]

    @property
    def failed(self) -> list[TaskResult[T]]:
        return [r for r in self.results if not r.success]

    @property
    def success_count(self) -> int:
        return len(self.successful)

    @property
    def error_count(self) -> int:
        return len(self.failed)

    @property
    def total_count(self) -> int:
        return len(self.results)

    def get_data(self) -> list[T]:
        """Data of successful tasks (one entry per task)"""
        return [r.data for r in self.results if r.success and r.data is not None]

    def get_flat_data(self) -> list[Any]:
        """Concatenation of successful tasks' sequences"""
        flat: list[Any] = []
        for data in self.get_data():
            if isinstance(data, (list, tuple)):
                flat.extend(data)
            else:
                flat.append(data)
        return flat

    def get_errors(self) -> list[TaskError]:
        return [r.error for r in self.results if r.error is not None]

    def get_errors_by_category(self) -> dict[ErrorCategory, list[TaskError]]:
        by_category: dict[ErrorCategory, list[TaskError]] = {}
        for error in self.get_errors():
            by_category.setdefault(error.category, []).append(error)
        return by_category

    def get_error_summary(self, max_per_category: int = 5) -> str:
        """Multi-line failure summary grouped by category, empty if none"""
        errors = self.get_errors()
        if not errors:
            return ""

        lines = [f"{len(errors)} task(s) failed"]
        for category, category_errors in self.get_errors_by_category().items():
            lines.append(f"  [{category.value}] {len(category_errors)}")
            for error in category_errors[:max_per_category]:
                lines.append(f"    - {error.identifier}/{error.resource}: {error.error_code}")
            remaining = len(category_errors) - max_per_category
            if remaining > 0:
                lines.append(f"    ... and {remaining} more")
        return "\n".join(lines)
