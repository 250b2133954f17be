"""Decorator utilities for cross-cutting concerns."""
import functools
import logging
import time
from typing import Any, Callable, Optional, Tuple, Type, TypeVar, cast

logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


def log_execution_time(func: F) -> F:
    """Decorator to log how long a call took, whether it succeeded or raised."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            logger.error("%s failed after %.2fs: %s", func.__name__, time.monotonic() - start_time, e)
            raise
        logger.info("%s completed in %.2fs", func.__name__, time.monotonic() - start_time)
        return result
    return cast(F, wrapper)


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    should_retry: Optional[Callable[[BaseException], bool]] = None,
    logger_name: Optional[str] = None,
):
    """Decorator for retrying functions with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts, including the first one
        delay: Initial delay between attempts in seconds
        backoff: Multiplier applied to the delay after every failed attempt
        exceptions: Exception types that may be retried
        should_retry: Optional predicate; an exception it rejects is raised immediately
        logger_name: Optional logger name (defaults to module logger)
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")
    retry_logger = logging.getLogger(logger_name) if logger_name else logger

    def decorator(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            current_delay = delay
            for attempt in range(1, max_attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if should_retry is not None and not should_retry(e):
                        raise
                    if attempt == max_attempts:
                        retry_logger.error("All %d attempts failed for %s: %s", max_attempts, func.__name__, e)
                        raise
                    retry_logger.warning(
                        "Attempt %d/%d for %s failed: %s. Retrying in %.2fs",
                        attempt, max_attempts, func.__name__, e, current_delay,
                    )
                    if current_delay > 0:
                        time.sleep(current_delay)
                    current_delay *= backoff
        return cast(F, wrapper)

    return decorator
