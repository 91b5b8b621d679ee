"""
Engine call wrapper - per-call timeout plus capped exponential backoff.

Retryable failures (rate limiting, transient server errors, timeouts) are
retried up to ``policy.max_retries`` times with delay

    min(initial_delay * 2**attempt, max_delay) * (1 ± jitter)

Non-retryable failures propagate immediately. After the last attempt the
last failure is re-raised unchanged.
"""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Awaitable, Callable, TypeVar

from mixdown.config import RetryPolicy
from mixdown.errors import EngineTimeoutError, is_retryable

logger = logging.getLogger(__name__)

T = TypeVar("T")

Factory = Callable[[], Awaitable[T]]


async def with_timeout(operation: str, factory: Factory, timeout: float | None) -> T:
    """Await ``factory()`` for at most ``timeout`` seconds."""
    if timeout is None:
        return await factory()
    try:
        return await asyncio.wait_for(factory(), timeout)
    except asyncio.TimeoutError:
        raise EngineTimeoutError(operation, timeout) from None


async def with_retry(
    operation: str,
    factory: Factory,
    policy: RetryPolicy | None = None,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    rand: Callable[[], float] = random.random,
) -> T:
    """Call ``factory()`` until it succeeds or retries are exhausted.

    Args:
        operation: Name used in log messages.
        factory: Zero-argument coroutine factory; called once per attempt.
        policy: Backoff policy.
        sleep: Awaitable sleep (injectable for tests).
        rand: Uniform [0, 1) source for jitter (injectable for tests).
    """
    policy = policy or RetryPolicy()
    attempt = 0
    while True:
        try:
            return await factory()
        except Exception as e:
            if not is_retryable(e) or attempt >= policy.max_retries:
                raise
            base = policy.delay_for(attempt)
            delay = max(0.0, base + base * policy.jitter * (rand() * 2 - 1))
            attempt += 1
            logger.warning(
                f"{operation}: attempt {attempt}/{policy.max_retries} failed ({e}); "
                f"retrying in {delay:.2f}s"
            )
            await sleep(delay)


class EngineCaller:
    """Applies the timeout and retry policy to every engine call.

    Example:
        call = EngineCaller(RetryPolicy(max_retries=2), timeout=30.0)
        await call("execute_graph", lambda: engine.execute_graph(graph, out))
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        timeout: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.policy = policy or RetryPolicy()
        self.timeout = timeout
        self._sleep = sleep

    async def __call__(self, operation: str, factory: Factory) -> T:
        return await with_retry(
            operation,
            lambda: with_timeout(operation, factory, self.timeout),
            self.policy,
            sleep=self._sleep,
        )


__all__ = ["with_timeout", "with_retry", "EngineCaller"]
