"""Retry helpers for calls to external collaborators."""

import logging

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)

from pipeline_logs.core.logging import get_logger

logger = get_logger(__name__)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 1,
    max_wait: float = 10,
    exceptions: tuple = (Exception,),
):
    """
    Decorator for retry logic with exponential backoff.

    Only use it for idempotent calls. Store queries are never retried
    automatically.

    Usage:
        @with_retry(max_attempts=3, exceptions=(httpx.TransportError,))
        async def call_authority():
            ...
    """
    return retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=1, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
