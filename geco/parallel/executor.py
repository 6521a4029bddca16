"""
geco/parallel/executor.py - Bounded task dispatcher

Runs one fetch task per (project, resource type) on a thread pool while an
admission gate caps how many tasks are doing remote work at the same time.

Each task:
    1. acquires an admission slot (blocks while the limit is held),
    2. runs its fetch (a paginated listing scoped to one project),
    3. releases the slot as soon as the remote work ends, success or failure,
    4. reports exactly one TaskResult to the coordinator through a queue.

A failing task is logged and reports "no data"; it never aborts its siblings.
The coordinator blocks until it has received exactly one report per task.

Example:
    from geco.parallel import BoundedTaskDispatcher, FetchTask, ParallelConfig

    tasks = [
        FetchTask(p.project_id, "instances", lambda p=p: collect_instances(client, p), label=p.name)
        for p in projects
    ]
    result = BoundedTaskDispatcher(ParallelConfig(max_in_flight=10)).dispatch(tasks)
    instances = result.get_flat_data()
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING, Generic, TypeVar

from geco.exceptions import ConfigError, PartialFetchError, RemoteCallError

from .decorators import categorize_error, get_error_code
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

if TYPE_CHECKING:
    from geco.cli.ui.progress import ParallelTracker

    from .errors import ErrorCollector

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_WORKERS_CAP = 100


def _clear_exception_chain(e: BaseException) -> None:
    """Drop tracebacks kept alive by stored exceptions"""
    e.__traceback__ = None
    if e.__context__ is not None:
        e.__context__.__traceback__ = None
    if e.__cause__ is not None:
        e.__cause__.__traceback__ = None


@dataclass
class ParallelConfig:
    """Dispatcher settings

    Attributes:
        max_in_flight: Admission limit, tasks doing remote work at once (>= 1)
        max_workers: Worker thread pool size (1~100)
    """

    max_in_flight: int = 10
    max_workers: int = 20

    def __post_init__(self) -> None:
        if self.max_in_flight < 1:
            raise ConfigError("max_in_flight", f"must be >= 1, got {self.max_in_flight}")
        if self.max_workers < 1:
            raise ConfigError("max_workers", f"must be >= 1, got {self.max_workers}")
        if self.max_workers > MAX_WORKERS_CAP:
            self.max_workers = MAX_WORKERS_CAP


class AdmissionGate:
    """Counting admission gate

    A bounded semaphore that also tracks how many slots are held right now
    and the highest occupancy seen. Use as a context manager.
    """

    def __init__(self, limit: int):
        if limit < 1:
            raise ConfigError("max_in_flight", f"must be >= 1, got {limit}")
        self.limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    def acquire(self) -> None:
        self._semaphore.acquire()
        with self._lock:
            self._active += 1
            self._peak = max(self._peak, self._active)

    def release(self) -> None:
        with self._lock:
            self._active -= 1
        self._semaphore.release()

    def __enter__(self) -> AdmissionGate:
        self.acquire()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak


@dataclass
class FetchTask(Generic[T]):
    """One unit of remote work

    Attributes:
        identifier: Project ID the task is scoped to
        resource: Resource type, used for logging ("instances", ...)
        fetch: Zero-argument callable doing the remote work
        label: Display name for log lines (defaults to identifier)
    """

    identifier: str
    resource: str
    fetch: Callable[[], T]
    label: str = ""

    @property
    def display_name(self) -> str:
        if self.label and self.label != self.identifier:
            return f"{self.label} ({self.identifier})"
        return self.identifier


class BoundedTaskDispatcher:
    """Bounded-concurrency task dispatcher

    Results travel from workers to the caller through a queue; the caller
    collects exactly ``len(tasks)`` reports, in completion order.

    Example:
        dispatcher = BoundedTaskDispatcher(ParallelConfig(max_in_flight=10))
        result = dispatcher.dispatch(tasks)

        print(f"ok: {result.success_count}, failed: {result.error_count}")
    """

    def __init__(
        self,
        config: ParallelConfig | None = None,
        error_collector: ErrorCollector | None = None,
    ):
        self.config = config or ParallelConfig()
        self.error_collector = error_collector
        self.gate = AdmissionGate(self.config.max_in_flight)

    def dispatch(
        self,
        tasks: Sequence[FetchTask[T]],
        progress_tracker: ParallelTracker | None = None,
    ) -> ParallelExecutionResult[T]:
        """Run every task and wait for all of their reports

        Args:
            tasks: Tasks to run
            progress_tracker: Optional tracker; gets ``set_total`` once and
                ``on_complete`` per report

        Returns:
            ParallelExecutionResult with exactly one TaskResult per task
        """
        if not tasks:
            logger.debug("no tasks to dispatch")
            return ParallelExecutionResult()

        if progress_tracker:
            progress_tracker.set_total(len(tasks))

        pool_size = min(self.config.max_workers, len(tasks))
        logger.debug(
            "dispatching %d tasks, max_in_flight=%d, workers=%d",
            len(tasks),
            self.gate.limit,
            pool_size,
        )

        outbox: queue.SimpleQueue[TaskResult[T]] = queue.SimpleQueue()
        results: list[TaskResult[T]] = []
        start_time = time.monotonic()

        with ThreadPoolExecutor(max_workers=pool_size, thread_name_prefix="geco-fetch") as executor:
            for task in tasks:
                executor.submit(self._run, task, outbox)

            for _ in range(len(tasks)):
                result = outbox.get()
                results.append(result)
                if progress_tracker:
                    progress_tracker.on_complete(result.success)

        exec_result = ParallelExecutionResult(results=tuple(results))
        logger.debug(
            "dispatch finished: %d ok, %d failed, %.0fms",
            exec_result.success_count,
            exec_result.error_count,
            (time.monotonic() - start_time) * 1000,
        )
        return exec_result

    def _run(self, task: FetchTask[T], outbox: queue.SimpleQueue[TaskResult[T]]) -> None:
        """Worker entry point; always puts exactly one report"""
        try:
            result = self._execute_single(task)
        except Exception as e:
            logger.error(f"unexpected error in task [{task.identifier}/{task.resource}]: {e}")
            _clear_exception_chain(e)
            result = TaskResult(
                identifier=task.identifier,
                resource=task.resource,
                success=False,
                error=TaskError(
                    identifier=task.identifier,
                    resource=task.resource,
                    category=ErrorCategory.UNKNOWN,
                    error_code="ExecutorError",
                    message=str(e),
                    original_exception=e,
                ),
            )
        outbox.put(result)

    def _execute_single(self, task: FetchTask[T]) -> TaskResult[T]:
        """Run one task inside an admission slot

        The slot is released when the ``with`` block ends, before the
        caller reports the result.
        """
        start_time = time.monotonic()

        with self.gate:
            logger.info("loading %s in %s...", task.resource, task.display_name)
            try:
                data = task.fetch()
            except Exception as e:
                failure = PartialFetchError(task.identifier, task.resource, cause=e)
                self._report_failure(task, failure)
                _clear_exception_chain(e)
                return TaskResult(
                    identifier=task.identifier,
                    resource=task.resource,
                    success=False,
                    error=TaskError(
                        identifier=task.identifier,
                        resource=task.resource,
                        category=categorize_error(e),
                        error_code=get_error_code(e),
                        message=str(e),
                        retries=e.retries if isinstance(e, RemoteCallError) else 0,
                        original_exception=failure,
                    ),
                    duration_ms=(time.monotonic() - start_time) * 1000,
                )

        count = len(data) if hasattr(data, "__len__") else 1
        logger.info("loaded %s in %s, %d found.", task.resource, task.display_name, count)
        return TaskResult(
            identifier=task.identifier,
            resource=task.resource,
            success=True,
            data=data,
            duration_ms=(time.monotonic() - start_time) * 1000,
        )

    def _report_failure(self, task: FetchTask[T], failure: PartialFetchError) -> None:
        cause = failure.cause
        operation = cause.operation if isinstance(cause, RemoteCallError) else task.resource
        if self.error_collector is not None:
            self.error_collector.collect(cause or failure, task.identifier, task.resource, operation)
        else:
            logger.warning(f"error on loading {task.resource} in {task.display_name}, ignored: {cause}")
