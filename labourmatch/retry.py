"""
Retry logic with exponential backoff for transient store failures.

SQLite reports lock contention and I/O hiccups as OperationalError; those
are worth another attempt, while schema errors ("no such table") are not.
"""

import time
import functools
from typing import Callable, Type, Tuple, Optional


class RetryError(Exception):
    """Raised when all retry attempts are exhausted."""
    pass


def exponential_backoff(
    max_retries: int = 3,
    base_delay: float = 0.05,
    max_delay: float = 2.0,
    exponential_base: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    retry_if: Optional[Callable[[Exception], bool]] = None,
    on_retry: Optional[Callable] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts (0 = no retries)
        base_delay: Initial delay in seconds
        max_delay: Maximum delay between retries in seconds
        exponential_base: Base for exponential calculation (delay *= base)
        exceptions: Tuple of exceptions to catch and retry
        retry_if: Optional predicate; a caught exception it rejects is re-raised at once
        on_retry: Optional callback function(attempt, exception, delay)

    Example:
        @exponential_backoff(max_retries=3, exceptions=(OperationalError,),
                             retry_if=is_transient_error)
        def load_workers(session):
            return session.query(WorkerAvailability).all()
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            delay = base_delay

            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise

                    if attempt >= max_retries:
                        raise RetryError(
                            f"Failed after {max_retries + 1} attempts: {str(e)}"
                        ) from e

                    current_delay = min(delay, max_delay)
                    if on_retry:
                        on_retry(attempt + 1, e, current_delay)

                    time.sleep(current_delay)
                    delay *= exponential_base

        return wrapper
    return decorator


def is_transient_error(exception: Exception) -> bool:
    """
    Determine if a store exception is likely transient and should be retried.

    Args:
        exception: Exception to check

    Returns:
        True if error looks like contention, a timeout or a dropped connection
    """
    error_str = str(exception).lower()

    transient_keywords = [
        'database is locked',
        'database table is locked',
        'timeout',
        'timed out',
        'disk i/o error',
        'connection',
        'could not connect',
        'server closed the connection',
    ]

    return any(keyword in error_str for keyword in transient_keywords)
