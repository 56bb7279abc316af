"""
Retry utilities for Sleeper API calls.

Transport failures (timeouts, dropped connections, 5xx) are retried with
exponential backoff. Callers choose which exception types are retryable, so
not-found and rate-limit responses pass straight through.
"""

import asyncio
import inspect
import logging
from typing import Optional, Callable, Any, Tuple, Type

logger = logging.getLogger(__name__)


async def retry_with_backoff(
    func: Callable,
    *args,
    max_retries: int = 2,
    initial_delay: float = 0.5,
    max_delay: float = 10.0,
    exponential_base: float = 2.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,),
    operation_name: Optional[str] = None,
    **kwargs
) -> Any:
    """
    Execute func with exponential backoff retry.

    Args:
        func: Async (or sync) function to execute
        *args: Positional arguments for func
        max_retries: Retry attempts after the first call
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay, in seconds
        exponential_base: Base for exponential backoff
        retry_on: Exception types that trigger a retry; others propagate at once
        operation_name: Label used in log messages
        **kwargs: Keyword arguments for func

    Returns:
        Function result

    Raises:
        The last exception if all retries fail, or any non-retryable exception
    """
    label = operation_name or getattr(func, "__name__", "call")
    last_exception: Optional[BaseException] = None

    for attempt in range(max_retries + 1):
        try:
            if inspect.iscoroutinefunction(func):
                result = await func(*args, **kwargs)
            else:
                result = func(*args, **kwargs)

            if attempt > 0:
                logger.info(f"[Retry] {label} succeeded on attempt {attempt + 1}/{max_retries + 1}")
            return result

        except retry_on as e:
            last_exception = e

            if attempt >= max_retries:
                logger.error(
                    f"[Retry] {label} failed after {attempt + 1} attempts: {type(e).__name__}: {e}"
                )
                break

            delay = min(initial_delay * (exponential_base ** attempt), max_delay)
            logger.warning(
                f"[Retry] {label} attempt {attempt + 1}/{max_retries + 1} failed: "
                f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
            )
            await asyncio.sleep(delay)

    raise last_exception
