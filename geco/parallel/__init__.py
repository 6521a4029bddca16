"""
geco/parallel - Bounded parallel fetching

Components:
- BoundedTaskDispatcher: runs fetch tasks behind an admission gate
- AdmissionGate: counting semaphore with occupancy tracking
- RetryConfig / is_retryable: retry policy for remote calls
- ErrorCollector: thread-safe partial failure collection

Example:
    from geco.parallel import BoundedTaskDispatcher, FetchTask, ParallelConfig

    dispatcher = BoundedTaskDispatcher(ParallelConfig(max_in_flight=10))
    result = dispatcher.dispatch(tasks)

    data = result.get_flat_data()
    if result.error_count > 0:
        print(result.get_error_summary())
"""

from .decorators import RetryConfig, categorize_error, get_error_code, is_retryable
from .errors import CollectedError, ErrorCollector, ErrorSeverity
from .executor import AdmissionGate, BoundedTaskDispatcher, FetchTask, ParallelConfig
from .types import ErrorCategory, ParallelExecutionResult, TaskError, TaskResult

__all__: list[str] = [
    # Dispatcher
    "AdmissionGate",
    "BoundedTaskDispatcher",
    "FetchTask",
    "ParallelConfig",
    # Retry
    "RetryConfig",
    "categorize_error",
    "get_error_code",
    "is_retryable",
    # Error handling
    "CollectedError",
    "ErrorCollector",
    "ErrorSeverity",
    # Types
    "ErrorCategory",
    "TaskError",
    "TaskResult",
    "ParallelExecutionResult",
]
