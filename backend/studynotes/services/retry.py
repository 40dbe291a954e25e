"""
Retry policy shared by the outbound provider clients.

Only idempotent generation/speech calls go through here. A provider call is
retried when the transport fails or the provider answers 5xx; 4xx answers and
malformed bodies fail immediately.
"""

import logging
from typing import Optional

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)


class RetryableProviderError(Exception):
    """A provider failure worth another attempt (transport error, timeout, 5xx)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def provider_retrying(
    logger: logging.Logger,
    max_attempts: int,
    min_wait: float,
    max_wait: float,
) -> AsyncRetrying:
    """
    Build a tenacity controller for one provider call.

    Usage:
        async for attempt in provider_retrying(logger, 2, 1.0, 5.0):
            with attempt:
                ...
    """
    return AsyncRetrying(
        retry=retry_if_exception_type(RetryableProviderError),
        stop=stop_after_attempt(max_attempts),
        # wait = min(max_wait, min_wait * 2^attempt) + random(0, 1)
        wait=wait_exponential_jitter(initial=min_wait, max=max_wait, jitter=1),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
