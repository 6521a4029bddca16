"""
geco/exceptions.py - Exception hierarchy

Hierarchy:
    GecoError (base)
    ├── RemoteCallError (a paginated API call failed)
    ├── RefreshError (inventory refresh)
    │   ├── FatalRefreshError       - project listing failed, refresh aborted
    │   ├── PartialFetchError       - one (project, resource) fetch failed, recovered
    │   └── PartialEnrichmentError  - one instance group's members incomplete, recovered
    ├── CacheError (local cache)
    │   ├── CacheCorruptionError    - a cache document exists but cannot be parsed
    │   └── CacheWriteError         - the cache could not be written
    └── ConfigError

Usage:
    from geco.exceptions import RemoteCallError, is_access_denied

    try:
        items = paginate(call, operation="compute.instances.aggregatedList")
    except RemoteCallError as e:
        if is_access_denied(e):
            logger.info("Compute API not enabled or not permitted")
"""

from __future__ import annotations

from typing import Any

# =============================================================================
# Base
# =============================================================================


class GecoError(Exception):
    """Base class for all geco exceptions

    Attributes:
        message: Error message
        cause: Underlying exception
        details: Extra structured context
    """

    def __init__(
        self,
        message: str,
        cause: Exception | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.details = details or {}

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message}: {self.cause}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "cause": str(self.cause) if self.cause else None,
            "details": self.details,
        }


# =============================================================================
# Remote calls
# =============================================================================


class RemoteCallError(GecoError):
    """A remote list call failed

    Wraps the last underlying failure (usually ``googleapiclient.errors.HttpError``)
    after retries were exhausted or a non-retryable error was hit.
    """

    def __init__(
        self,
        operation: str,
        scope: str = "",
        cause: Exception | None = None,
        retries: int = 0,
    ):
        message = f"{operation} failed"
        if scope:
            message = f"{operation} [{scope}] failed"
        super().__init__(message, cause)
        self.operation = operation
        self.scope = scope
        self.retries = retries
        self.status_code = http_status(cause) if cause is not None else None
        self.reasons = sorted(http_reasons(cause)) if cause is not None else []
        self.details.update(
            {
                "operation": operation,
                "scope": scope,
                "status_code": self.status_code,
                "reasons": self.reasons,
                "retries": retries,
            }
        )


# =============================================================================
# Refresh
# =============================================================================


class RefreshError(GecoError):
    """Inventory refresh errors"""


class FatalRefreshError(RefreshError):
    """The project listing failed; no refresh is possible without it"""

    def __init__(self, cause: Exception | None = None):
        super().__init__("failed to load projects", cause)


class PartialFetchError(RefreshError):
    """One per-project fetch failed; it contributes no data"""

    def __init__(self, project_id: str, resource: str, cause: Exception | None = None):
        super().__init__(f"failed to load {resource} in {project_id}", cause)
        self.project_id = project_id
        self.resource = resource
        self.details.update({"project_id": project_id, "resource": resource})


class PartialEnrichmentError(RefreshError):
    """Member enrichment of one instance group stopped early"""

    def __init__(
        self,
        project_id: str,
        zone: str,
        group_name: str,
        collected: int = 0,
        cause: Exception | None = None,
    ):
        super().__init__(
            f"failed to load members of {project_id}/{zone}/{group_name} (kept {collected})",
            cause,
        )
        self.project_id = project_id
        self.zone = zone
        self.group_name = group_name
        self.collected = collected
        self.details.update(
            {
                "project_id": project_id,
                "zone": zone,
                "group_name": group_name,
                "collected": collected,
            }
        )


# =============================================================================
# Cache
# =============================================================================


class CacheError(GecoError):
    """Local cache errors"""

    def __init__(self, message: str, path: str = "", cause: Exception | None = None):
        super().__init__(message, cause)
        self.path = path
        if path:
            self.details["path"] = path


class CacheCorruptionError(CacheError):
    """A cache document exists but cannot be parsed"""

    def __init__(self, path: str, reason: str, cause: Exception | None = None):
        super().__init__(f"corrupt cache document {path}: {reason}", path=path, cause=cause)
        self.reason = reason


class CacheWriteError(CacheError):
    """The cache could not be written"""

    def __init__(self, path: str, reason: str, cause: Exception | None = None):
        super().__init__(f"failed to write cache {path}: {reason}", path=path, cause=cause)
        self.reason = reason


# =============================================================================
# Config
# =============================================================================


class ConfigError(GecoError):
    """Invalid configuration value"""

    def __init__(self, key: str, message: str, cause: Exception | None = None):
        super().__init__(f"invalid setting [{key}]: {message}", cause)
        self.config_key = key
        self.details["config_key"] = key


# =============================================================================
# Classification helpers
# =============================================================================

RATE_LIMIT_REASONS = {"rateLimitExceeded", "userRateLimitExceeded", "quotaExceeded"}


def root_cause(error: BaseException) -> BaseException:
    """Follow GecoError causes down to the originating exception"""
    while isinstance(error, GecoError) and error.cause is not None:
        error = error.cause
    return error


def http_status(error: BaseException) -> int | None:
    """HTTP status of a ``googleapiclient`` HttpError (or wrapped one), else None"""
    error = root_cause(error)
    resp = getattr(error, "resp", None)
    status = getattr(resp, "status", None)
    if status is None:
        return None
    try:
        return int(status)
    except (TypeError, ValueError):
        return None


def http_reasons(error: BaseException) -> set[str]:
    """``reason`` fields from an HttpError's error details"""
    error = root_cause(error)
    details = getattr(error, "error_details", None)
    if not isinstance(details, list):
        return set()
    return {d["reason"] for d in details if isinstance(d, dict) and "reason" in d}


def is_throttling(error: BaseException) -> bool:
    status = http_status(error)
    if status == 429:
        return True
    return status == 403 and bool(http_reasons(error) & RATE_LIMIT_REASONS)


def is_access_denied(error: BaseException) -> bool:
    status = http_status(error)
    return status in (401, 403) and not is_throttling(error)


def is_not_found(error: BaseException) -> bool:
    return http_status(error) == 404


def format_error_for_user(error: BaseException) -> str:
    """One-line message suitable for the terminal"""
    if isinstance(error, GecoError):
        return str(error)

    friendly_messages = {
        401: "credentials were rejected; run `gcloud auth application-default login`",
        403: "permission denied",
        404: "resource not found",
        429: "rate limited; try again later",
    }
    status = http_status(error)
    if status in friendly_messages:
        return f"{friendly_messages[status]} ({error})"
    return str(error)
