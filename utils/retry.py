"""Backoff retry for transient Firestore failures."""

import asyncio
import functools
import re
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import structlog
from google.api_core import exceptions as gexc

log = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

# Errors the Firestore client surfaces for overload, timeouts and restarts
TRANSIENT_STORE_ERRORS: tuple[type[Exception], ...] = (
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    gexc.InternalServerError,
    gexc.ResourceExhausted,
    gexc.Aborted,
)

# Push tokens can leak into SDK error strings
_SENSITIVE = re.compile(
    r"((?:fcmToken|registration[_ ]token|token|private_key)[=:\s]+)[^&\s'\",)]+",
    re.IGNORECASE,
)


def sanitize_error(error: str) -> str:
    """Strip push tokens and keys from error messages."""
    return _SENSITIVE.sub(r"\1[REDACTED]", error)


def retry_transient(
    max_retries: int = 2,
    base_delay: float = 0.5,
    max_delay: float = 8.0,
    exceptions: tuple[type[Exception], ...] = TRANSIENT_STORE_ERRORS,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Retry an async store read on transient errors, doubling the delay each attempt.

    Only read paths use this. Writes that follow a push send are never
    retried so a notification is not recorded twice.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt >= max_retries:
                        log.error(
                            "store_retry_exhausted",
                            func=func.__name__,
                            attempts=attempt + 1,
                            error=sanitize_error(str(e)),
                        )
                        raise
                    delay = min(base_delay * (2 ** attempt), max_delay)
                    attempt += 1
                    log.warning(
                        "store_retry_attempt",
                        func=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay=delay,
                        error=sanitize_error(str(e)),
                    )
                    await asyncio.sleep(delay)

        return wrapper

    return decorator
