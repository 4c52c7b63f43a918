"""
Retry Helpers
Exponential backoff for Google Workspace APIs

Only rate limiting (429) and temporary unavailability (503) are retried.
Delay is 2^attempt seconds plus up to 1s of jitter, capped at 32s.
"""
import logging

import httpx
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = frozenset({429, 503})
DEFAULT_MAX_RETRIES = 5
INITIAL_DELAY_SECONDS = 1
MAX_DELAY_SECONDS = 32
MAX_JITTER_SECONDS = 1


def is_retryable_error(error: BaseException) -> bool:
    """True for HTTP 429/503 responses from an upstream API."""
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code in RETRYABLE_STATUS_CODES
    status = getattr(error, "status_code", None) or getattr(error, "code", None)
    return status in RETRYABLE_STATUS_CODES


def _retry_kwargs(max_retries: int) -> dict:
    return {
        "retry": retry_if_exception(is_retryable_error),
        "stop": stop_after_attempt(max_retries + 1),
        "wait": wait_exponential_jitter(
            initial=INITIAL_DELAY_SECONDS,
            max=MAX_DELAY_SECONDS,
            jitter=MAX_JITTER_SECONDS,
        ),
        "before_sleep": before_sleep_log(logger, logging.WARNING),
        "reraise": True,
    }


def with_google_retry(func=None, *, max_retries: int = DEFAULT_MAX_RETRIES):
    """
    Decorator for coroutines that call Google APIs.

    Usage:
        @with_google_retry
        async def list_messages(...): ...
    """
    decorator = retry(**_retry_kwargs(max_retries))
    if func is not None:
        return decorator(func)
    return decorator


async def call_with_retry(fn, *args, max_retries: int = DEFAULT_MAX_RETRIES, **kwargs):
    """Await fn(*args, **kwargs), retrying on 429/503."""
    async for attempt in AsyncRetrying(**_retry_kwargs(max_retries)):
        with attempt:
            return await fn(*args, **kwargs)
