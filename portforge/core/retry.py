"""Retry policy for operations that fail transiently."""
import functools
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type

from portforge.core.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How often and how patiently to retry an operation.

    Attributes:
        max_attempts: Total number of attempts, including the first one
        delay_before_first: Seconds to wait before the first attempt
        delay_between: Seconds to wait after a failed attempt
        backoff: Multiplier applied to delay_between after every failure
        exceptions: Exception types that trigger a retry
    """

    max_attempts: int = 3
    delay_before_first: float = 0.0
    delay_between: float = 2.0
    backoff: float = 1.0
    exceptions: Tuple[Type[BaseException], ...] = (Exception,)

    def call(self, func: Callable, *args, sleep: Optional[Callable[[float], None]] = None, **kwargs):
        """Call func under this policy and return its result.

        The last exception is re-raised unchanged once max_attempts is reached.
        """
        sleep = sleep or time.sleep
        name = getattr(func, "__name__", repr(func))
        attempts = max(1, self.max_attempts)
        current_delay = self.delay_between

        if self.delay_before_first > 0:
            sleep(self.delay_before_first)

        for attempt in range(1, attempts + 1):
            try:
                return func(*args, **kwargs)
            except self.exceptions as e:
                if attempt == attempts:
                    logger.error(f"{name} failed after {attempts} attempts: {e}")
                    raise

                logger.warning(f"{name} failed (attempt {attempt}/{attempts}): {e}")
                logger.info(f"Retrying in {current_delay:.1f}s...")
                sleep(current_delay)
                current_delay *= self.backoff


def retry(
    max_attempts: int = 3,
    delay: float = 2.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    delay_before_first: float = 0.0,
):
    """Retry decorator with exponential backoff.

    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay in seconds between attempts
        backoff: Backoff multiplier for each retry
        exceptions: Tuple of exception types to catch and retry
        delay_before_first: Seconds to wait before the first attempt

    Example:
        @retry(max_attempts=3, delay=1, exceptions=(OSError,))
        def remove_tree(path):
            ...
    """
    policy = RetryPolicy(
        max_attempts=max_attempts,
        delay_before_first=delay_before_first,
        delay_between=delay,
        backoff=backoff,
        exceptions=exceptions,
    )

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            return policy.call(func, *args, **kwargs)

        return wrapper

    return decorator
