"""
geco/parallel/errors.py - Partial failure collection

Collects recoverable failures raised during a refresh (one per failed
project fetch or truncated enrichment) so they can be summarized after the
run instead of aborting it.

Components:
- ErrorSeverity: severity levels
- CollectedError: one recorded failure with its context
- ErrorCollector: thread-safe collector

Example:
    collector = ErrorCollector()

    try:
        instances = collect_instances(client, project)
    except RemoteCallError as e:
        collector.collect(e, project.project_id, "instances", "compute.instances.aggregatedList")

    if collector.has_errors:
        print(collector.get_summary())
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory

logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Severity of a collected error; decides the log level"""

    CRITICAL = "critical"
    WARNING = "warning"  # partial failure, refresh continues
    INFO = "info"  # expected, e.g. Compute API disabled in a project
    DEBUG = "debug"


@dataclass
class CollectedError:
    """A recorded failure

    Attributes:
        timestamp: When it was recorded
        project_id: Project the failing call was scoped to
        resource: Resource type ("instances", "instance_groups", "members")
        operation: API operation name
        error_code: HTTP status or exception class name
        error_message: Error message
        severity: Severity
        category: ErrorCategory
        resource_id: Specific resource (e.g. instance group), if any
    """

    timestamp: datetime
    project_id: str
    resource: str
    operation: str
    error_code: str
    error_message: str
    severity: ErrorSeverity
    category: ErrorCategory
    resource_id: str | None = None

    def __str__(self) -> str:
        loc = self.project_id
        if self.resource_id:
            loc = f"{loc}/{self.resource_id}"
        return f"[{self.severity.value.upper()}] {loc} - {self.operation}: {self.error_code}"


class ErrorCollector:
    """Thread-safe collector of partial failures

    Worker threads may call ``collect`` concurrently. Access-denied errors
    are downgraded to INFO: projects without the Compute API enabled answer
    403 and are not worth a warning.
    """

    def __init__(self) -> None:
        self._errors: list[CollectedError] = []
        self._lock = threading.Lock()

    def collect(
        self,
        error: BaseException,
        project_id: str,
        resource: str,
        operation: str,
        severity: ErrorSeverity = ErrorSeverity.WARNING,
        resource_id: str | None = None,
    ) -> CollectedError:
        """Record and log a failure"""
        category = categorize_error(error)

        if category == ErrorCategory.ACCESS_DENIED:
            severity = ErrorSeverity.INFO

        collected = CollectedError(
            timestamp=datetime.now(),
            project_id=project_id,
            resource=resource,
            operation=operation,
            error_code=get_error_code(error),
            error_message=str(error),
            severity=severity,
            category=category,
            resource_id=resource_id,
        )

        with self._lock:
            self._errors.append(collected)

        log_msg = f"{collected} ({collected.error_message}), ignored"
        if severity == ErrorSeverity.CRITICAL:
            logger.error(log_msg)
        elif severity == ErrorSeverity.WARNING:
            logger.warning(log_msg)
        elif severity == ErrorSeverity.INFO:
            logger.info(log_msg)
        else:
            logger.debug(log_msg)

        return collected

    @property
    def errors(self) -> list[CollectedError]:
        with self._lock:
            return list(self._errors)

    @property
    def has_errors(self) -> bool:
        with self._lock:
            return len(self._errors) > 0

    def get_summary(self) -> str:
        """e.g. "3 error(s) (info: 1, warning: 2)" """
        with self._lock:
            if not self._errors:
                return "no errors"

            by_severity: dict[str, int] = {}
            for e in self._errors:
                by_severity[e.severity.value] = by_severity.get(e.severity.value, 0) + 1

            parts = [f"{k}: {v}" for k, v in sorted(by_severity.items())]
            return f"{len(self._errors)} error(s) ({', '.join(parts)})"

    def get_by_project(self) -> dict[str, list[CollectedError]]:
        with self._lock:
            result: dict[str, list[CollectedError]] = {}
            for e in self._errors:
                result.setdefault(e.project_id, []).append(e)
            return result

    def clear(self) -> None:
        with self._lock:
            self._errors.clear()
