"""
Retry with exponential backoff for transient database failures

Only errors that look transient (dropped connections, timeouts, deadlocks)
are retried; anything else, including constraint violations and bad SQL,
propagates on the first attempt.

Usage:
    from utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3, base_delay=0.5)
    def connect():
        return psycopg2.connect(dsn)
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

RETRYABLE_PATTERNS = (
    "connection refused",
    "connection reset",
    "connection closed",
    "connection terminated",
    "could not connect",
    "server closed the connection",
    "timeout expired",
    "timed out",
    "deadlock detected",
    "lock timeout",
    "broken pipe",
    "network is unreachable",
)

RETRYABLE_TYPE_NAMES = frozenset({
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
})


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Decide whether a database exception is worth another attempt

    Args:
        exception: The exception raised by the driver

    Returns:
        True for connection, timeout and deadlock style failures
    """
    if type(exception).__name__.lower() in RETRYABLE_TYPE_NAMES:
        return True

    message = str(exception).lower()
    return any(pattern in message for pattern in RETRYABLE_PATTERNS)


def compute_backoff(attempt: int, base_delay: float, max_delay: float = 30.0) -> float:
    """Exponential delay for ``attempt`` (0-based) with +/-25% jitter."""
    delay = min(base_delay * (2.0 ** attempt), max_delay)
    jitter_amount = delay * 0.25
    return max(0.1, delay + random.uniform(-jitter_amount, jitter_amount))


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Optional[Callable[[int, Exception, float], None]] = None,
):
    """
    Decorator retrying a database call on transient errors

    Args:
        max_retries: Retries after the first attempt
        base_delay: Delay before the first retry, doubled on each further one
        on_retry: Callback ``(attempt, exception, delay)`` invoked before sleeping
    """
    def decorator(func: Callable) -> Callable:
        func_name = getattr(func, "__name__", "function")

        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if not is_retryable_db_exception(e):
                        raise

                    if attempt == max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = compute_backoff(attempt, base_delay)
                    logger.warning(
                        f"Retryable database error in {func_name} "
                        f"(attempt {attempt + 1}/{max_retries}): "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s"
                    )

                    if on_retry:
                        on_retry(attempt + 1, e, delay)

                    time.sleep(delay)

            raise RuntimeError(f"Retry loop for {func_name} exited without a result")

        return wrapper
    return decorator
