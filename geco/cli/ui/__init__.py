"""
geco/cli/ui - Rich console output and progress display
"""

from .console import console, print_error, print_info, print_success, print_warning, setup_logging
from .progress import ParallelTracker, parallel_progress

__all__: list[str] = [
    "console",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
    "setup_logging",
    "ParallelTracker",
    "parallel_progress",
]
