"""
geco/parallel/decorators.py - API error classification and retry settings

Classifies Google API failures, decides whether they are worth retrying,
and computes exponential backoff delays.

Components:
- RetryConfig: retry settings (exponential backoff + jitter)
- categorize_error: map an exception to an ErrorCategory
- get_error_code: extract an error code string
- is_retryable: whether a failure should be retried
"""

import logging
import random
import socket
from dataclasses import dataclass

from geco.exceptions import http_reasons, http_status, is_access_denied, is_not_found, is_throttling, root_cause

from .types import ErrorCategory

logger = logging.getLogger(__name__)


@dataclass
class RetryConfig:
    """Retry settings

    Attributes:
        max_retries: Maximum retries (0 disables retrying)
        base_delay: Base delay in seconds
        max_delay: Delay cap in seconds
        exponential_base: Backoff base
        jitter: Randomize delays (full jitter)
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0
    exponential_base: float = 2.0
    jitter: bool = True

    def get_delay(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)"""
        delay = self.base_delay * (self.exponential_base**attempt)
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Full jitter: [0, delay]
            delay = random.uniform(0, delay)

        return delay


DEFAULT_RETRY_CONFIG = RetryConfig()

# HTTP statuses worth retrying
RETRYABLE_STATUS_CODES: set[int] = {408, 429, 500, 502, 503, 504}

_NETWORK_ERRORS = (ConnectionError, socket.timeout, TimeoutError, OSError)


def categorize_error(error: BaseException) -> ErrorCategory:
    """Classify an exception into an ErrorCategory"""
    if is_throttling(error):
        return ErrorCategory.THROTTLING
    if is_access_denied(error):
        if "authError" in http_reasons(error) or http_status(error) == 401:
            return ErrorCategory.EXPIRED_TOKEN
        return ErrorCategory.ACCESS_DENIED
    if is_not_found(error):
        return ErrorCategory.NOT_FOUND

    status = http_status(error)
    if status is not None:
        if status == 408:
            return ErrorCategory.TIMEOUT
        if status >= 500:
            return ErrorCategory.SERVICE_ERROR
        if status == 400:
            return ErrorCategory.INVALID_REQUEST
        return ErrorCategory.UNKNOWN

    error = root_cause(error)
    if isinstance(error, (TimeoutError, socket.timeout)):
        return ErrorCategory.TIMEOUT
    if isinstance(error, _NETWORK_ERRORS):
        return ErrorCategory.NETWORK

    return ErrorCategory.UNKNOWN


def get_error_code(error: BaseException) -> str:
    """HTTP status as a string for API errors, else the exception class name"""
    status = http_status(error)
    if status is not None:
        return str(status)
    return error.__class__.__name__


def is_retryable(error: BaseException) -> bool:
    """Retry throttling, transient HTTP statuses and network errors"""
    if is_throttling(error):
        return True

    status = http_status(error)
    if status is not None:
        return status in RETRYABLE_STATUS_CODES

    return isinstance(root_cause(error), _NETWORK_ERRORS)
