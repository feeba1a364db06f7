"""Retry logic with exponential backoff for HTTP requests.

This module provides retry decorators using tenacity so every HTTP call
applies the client's retry policy the same way.

Example usage:
    from synse_client.api.session import create_retry_decorator

    retry = create_retry_decorator(retries=3, min_wait=0.1, max_wait=2)

    @retry
    def fetch_data():
        return client.get("/version")
"""

import logging
from typing import Any, Callable

import httpx
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from synse_client.config.settings import RetryOptions


RETRYABLE_ERRORS = (httpx.ConnectError, httpx.TimeoutException)


def create_retry_decorator(
    retries: int = 3,
    min_wait: float = 0.1,
    max_wait: float = 2.0,
    log_level: int = logging.WARNING,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Create a tenacity retry decorator with exponential backoff.

    Creates a decorator that retries on connection and timeout errors,
    with exponential backoff starting at min_wait seconds and capping
    at max_wait seconds. The last error is re-raised once retries run out.

    Args:
        retries: Number of retries after the first attempt (0 disables retry).
        min_wait: Minimum wait time in seconds between retries.
        max_wait: Maximum wait time in seconds between retries.
        log_level: Log level for retry attempt messages.

    Returns:
        A tenacity retry decorator.

    Backoff sequence (with min=0.1, max=2):
        Attempt 1: immediate
        Attempt 2: wait 0.1 seconds
        Attempt 3: wait 0.2 seconds
        Attempt 4: wait 0.4 seconds
        ...
        Capped at 2 seconds max
    """
    # Get a stdlib logger for tenacity's before_sleep_log
    stdlib_logger = logging.getLogger(__name__)

    return retry(
        stop=stop_after_attempt(retries + 1),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(stdlib_logger, log_level),
        reraise=True,
    )


def retry_from_options(options: RetryOptions) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """Create the retry decorator described by a client's retry options."""
    return create_retry_decorator(
        retries=options.count,
        min_wait=options.wait_time,
        max_wait=options.max_wait_time,
    )
