"""
Bounded-wait calls to external collaborators.

Every external call (knowledge-source lookup, place validation,
availability check) carries its own timeout. Timeouts and transient
service errors are retried with exponential backoff via tenacity;
anything else propagates on the first failure.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Tuple, Type

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from itinerary_agents.shared.exceptions import ExternalServiceError


logger = logging.getLogger(__name__)

RETRYABLE_ERRORS: Tuple[Type[BaseException], ...] = (
    asyncio.TimeoutError,
    ExternalServiceError,
)


async def call_with_retry(
    func: Callable[..., Awaitable[Any]],
    *args: Any,
    timeout: float = 30.0,
    attempts: int = 2,
    min_wait: float = 1.0,
    max_wait: float = 10.0,
    **kwargs: Any,
) -> Any:
    """
    Await ``func(*args, **kwargs)`` with a per-attempt timeout.

    Args:
        func: Coroutine function to call
        timeout: Seconds to wait for a single attempt
        attempts: Total attempts, including the first
        min_wait: Lower bound of the exponential backoff (seconds)
        max_wait: Upper bound of the exponential backoff (seconds)

    Returns:
        Whatever ``func`` returns.

    Raises:
        The last retryable error once attempts are exhausted, or any
        non-retryable error immediately.
    """
    retrying = AsyncRetrying(
        stop=stop_after_attempt(max(1, attempts)),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
