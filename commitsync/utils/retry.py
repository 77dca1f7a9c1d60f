"""Bounded retries with exponential backoff for flaky remote calls."""

import time
from functools import wraps
from typing import Callable, Optional, Tuple, Type

import structlog

log = structlog.stdlib.get_logger()


def backoff_delays(max_retries: int, base_delay: float, max_delay: float) -> list[float]:
    """Waits before each retry: base_delay doubling per attempt, capped at max_delay."""
    return [min(base_delay * 2**attempt, max_delay) for attempt in range(max_retries)]


def exponential_backoff_retry(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,),
    sleep: Optional[Callable[[float], None]] = None,
) -> Callable:
    """
    Retry the decorated function when it raises one of ``exceptions``.

    The function runs at most ``max_retries + 1`` times. After the last
    failure the original exception propagates; with ``max_retries=0`` the
    function runs once and nothing is logged here.

    Args:
        max_retries: Retries after the first attempt
        base_delay: Wait before the first retry, in seconds
        max_delay: Upper bound for any single wait
        exceptions: Exception types that trigger a retry
        sleep: Wait function, ``time.sleep`` when None
    """
    delays = backoff_delays(max_retries, base_delay, max_delay)

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt, delay in enumerate(delays, start=1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    log.warning(
                        "retrying_after_error",
                        function=func.__name__,
                        attempt=attempt,
                        max_retries=max_retries,
                        delay_seconds=delay,
                        error=str(e),
                    )
                (sleep or time.sleep)(delay)

            try:
                return func(*args, **kwargs)
            except exceptions as e:
                if max_retries:
                    log.error(
                        "retries_exhausted",
                        function=func.__name__,
                        max_retries=max_retries,
                        error=str(e),
                    )
                raise

        return wrapper

    return decorator
