"""Per-service dispatch queues with spacing, burst reservoir and rate-limit backoff."""

from __future__ import annotations

import asyncio
import random
from logging import getLogger
from typing import TYPE_CHECKING

from aiolimiter import AsyncLimiter

from .errors import ProcessingCancelledError, RateLimitedError, RetriesExhaustedError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from doitsukani.config.dispatch import DispatcherConfig

log = getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag shared by one processing session."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ProcessingCancelledError("Processing stopped by user")

    async def guard[T](self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the token fires first."""

        task = asyncio.ensure_future(awaitable)
        if self.cancelled:
            task.cancel()
            raise ProcessingCancelledError("Processing stopped by user")
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            waiter.cancel()
        if task in done:
            return task.result()
        task.cancel()
        raise ProcessingCancelledError("Processing stopped by user")

    async def sleep(self, delay: float) -> None:
        if delay <= 0:
            self.raise_if_cancelled()
            return
        await self.guard(asyncio.sleep(delay))


class RateLimitedDispatcher:
    """FIFO queue for one target service.

    ``max_concurrent`` bounds in-flight operations, ``min_spacing`` separates
    successive dispatches and the reservoir bounds sustained throughput. Only
    :class:`RateLimitedError` is retried; everything else propagates on first
    occurrence.
    """

    def __init__(
        self,
        config: DispatcherConfig,
        *,
        jitter_source: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self.config = config
        self._jitter_source = jitter_source
        self._semaphore = asyncio.Semaphore(config.max_concurrent)
        self._spacing_lock = asyncio.Lock()
        self._limiter: AsyncLimiter | None = (
            AsyncLimiter(config.reservoir, config.refill_interval)
            if config.reservoir is not None
            else None
        )
        self._last_dispatch: float | None = None

    @property
    def name(self) -> str:
        return self.config.name

    async def schedule[T](
        self,
        operation_id: str,
        task: Callable[[], Awaitable[T]],
        *,
        token: CancellationToken | None = None,
    ) -> T:
        policy = self.config.retry
        attempt = 0
        while True:
            attempt += 1
            try:
                return await self._dispatch(task, token)
            except RateLimitedError as exc:
                if attempt >= policy.max_attempts:
                    log.warning(
                        "[%s] %s rate limited, giving up after %s attempts",
                        self.name,
                        operation_id,
                        attempt,
                    )
                    raise RetriesExhaustedError(operation_id, attempts=attempt) from exc
                delay = self.backoff_delay(attempt - 1, retry_after=exc.retry_after)
                log.info(
                    "[%s] %s rate limited (attempt %s/%s), retrying in %.2fs",
                    self.name,
                    operation_id,
                    attempt,
                    policy.max_attempts,
                    delay,
                )
                await _sleep(delay, token)

    def backoff_delay(self, attempt: int, *, retry_after: float | None = None) -> float:
        """Delay before retry number ``attempt + 1`` (``attempt`` counts from zero)."""

        policy = self.config.retry
        delay = min(policy.max_delay, policy.base_delay * 2**attempt)
        if policy.jitter:
            delay *= self._jitter_source(1.0 - policy.jitter, 1.0 + policy.jitter)
        if retry_after is not None:
            delay = max(delay, retry_after)
        return delay

    async def _dispatch[T](
        self,
        task: Callable[[], Awaitable[T]],
        token: CancellationToken | None,
    ) -> T:
        if token is not None:
            token.raise_if_cancelled()
        async with self._semaphore:
            await self._wait_for_slot(token)
            return await task()

    async def _wait_for_slot(self, token: CancellationToken | None) -> None:
        loop = asyncio.get_running_loop()
        async with self._spacing_lock:
            if self._last_dispatch is not None and self.config.min_spacing > 0:
                remaining = self._last_dispatch + self.config.min_spacing - loop.time()
                if remaining > 0:
                    await _sleep(remaining, token)
            if self._limiter is not None:
                if token is None:
                    await self._limiter.acquire()
                else:
                    await token.guard(self._limiter.acquire())
            elif token is not None:
                token.raise_if_cancelled()
            self._last_dispatch = loop.time()


async def _sleep(delay: float, token: CancellationToken | None) -> None:
    if token is None:
        await asyncio.sleep(delay)
    else:
        await token.sleep(delay)
