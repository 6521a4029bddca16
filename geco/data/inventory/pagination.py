"""
geco/data/inventory/pagination.py - Paginated lister

Follows continuation tokens until a response carries none, retrying
transient failures of individual page calls.

- iter_pages: yields pages one at a time (callers may keep what they got
  before a failure)
- paginate: all-or-nothing; returns every item or raises RemoteCallError
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterator
from typing import Any

from geco.exceptions import RemoteCallError
from geco.gcp.client import Page
from geco.parallel.decorators import DEFAULT_RETRY_CONFIG, RetryConfig, is_retryable

logger = logging.getLogger(__name__)

PageCall = Callable[[str | None], Page]


def _fetch_page(
    call: PageCall,
    page_token: str | None,
    operation: str,
    scope: str,
    retry_config: RetryConfig,
) -> Page:
    """One page call with exponential backoff on retryable failures"""
    for attempt in range(retry_config.max_retries + 1):
        try:
            return call(page_token)
        except Exception as e:
            if not is_retryable(e) or attempt >= retry_config.max_retries:
                raise RemoteCallError(operation, scope, cause=e, retries=attempt) from e

            delay = retry_config.get_delay(attempt)
            logger.debug(f"[{operation}/{scope}] attempt {attempt + 1} failed ({e}), retrying in {delay:.2f}s")
            time.sleep(delay)

    # unreachable: the last attempt either returns or raises
    raise RemoteCallError(operation, scope, retries=retry_config.max_retries)


def iter_pages(
    call: PageCall,
    operation: str,
    scope: str = "",
    retry_config: RetryConfig | None = None,
) -> Iterator[Page]:
    """Yield pages until one arrives without a continuation token

    Args:
        call: ``page_token -> Page``; the first call gets None
        operation: API operation name, for logs and errors
        scope: What the listing is scoped to (project, zone/group), for logs
        retry_config: Retry policy per page call

    Raises:
        RemoteCallError: a page call failed for good
    """
    retry_config = retry_config or DEFAULT_RETRY_CONFIG
    page_token: str | None = None

    while True:
        page = _fetch_page(call, page_token, operation, scope, retry_config)
        yield page

        if not page.next_page_token:
            return

        logger.debug("loading more %s with nextPageToken%s...", operation, f" in {scope}" if scope else "")
        page_token = page.next_page_token


def paginate(
    call: PageCall,
    operation: str,
    scope: str = "",
    retry_config: RetryConfig | None = None,
) -> list[dict[str, Any]]:
    """Concatenate the items of every page

    Nothing is returned on failure: the RemoteCallError from the failing
    page propagates and the pages already fetched are dropped.
    """
    items: list[dict[str, Any]] = []
    for page in iter_pages(call, operation, scope, retry_config):
        items.extend(page.items)
    return items
