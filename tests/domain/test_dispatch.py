from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable  # noqa: TC003

import pytest

from doitsukani.config.dispatch import BackoffPolicy, DispatcherConfig
from doitsukani.domain.dispatch import CancellationToken, RateLimitedDispatcher
from doitsukani.domain.errors import (
    ProcessingCancelledError,
    RateLimitedError,
    RetriesExhaustedError,
    UnauthorizedError,
    ValidationFailedError,
)
from tests.helpers.synonyms import make_dispatcher


def test_rate_limited_operation_is_retried_until_success() -> None:
    attempts: list[int] = []

    async def flaky() -> str:
        attempts.append(len(attempts) + 1)
        if len(attempts) < 3:
            raise RateLimitedError
        return "ok"

    async def scenario() -> str:
        dispatcher = make_dispatcher(max_attempts=5)
        return await dispatcher.schedule("flaky", flaky)

    assert asyncio.run(scenario()) == "ok"
    assert attempts == [1, 2, 3]


def test_retries_exhausted_after_max_attempts() -> None:
    calls = 0

    async def always_limited() -> None:
        nonlocal calls
        calls += 1
        raise RateLimitedError

    async def scenario() -> None:
        dispatcher = make_dispatcher(max_attempts=3)
        await dispatcher.schedule("update-5", always_limited)

    with pytest.raises(RetriesExhaustedError) as excinfo:
        asyncio.run(scenario())

    assert calls == 3
    assert excinfo.value.attempts == 3
    assert excinfo.value.operation_id == "update-5"


@pytest.mark.parametrize(
    "error",
    [UnauthorizedError("bad token"), ValidationFailedError("too many synonyms")],
)
def test_non_rate_limit_errors_are_not_retried(error: Exception) -> None:
    calls = 0

    async def failing() -> None:
        nonlocal calls
        calls += 1
        raise error

    async def scenario() -> None:
        dispatcher = make_dispatcher(max_attempts=5)
        await dispatcher.schedule("op", failing)

    with pytest.raises(type(error)):
        asyncio.run(scenario())

    assert calls == 1


def test_backoff_grows_exponentially_and_is_capped() -> None:
    config = DispatcherConfig(
        name="backoff",
        retry=BackoffPolicy(max_attempts=5, base_delay=2.0, max_delay=10.0, jitter=0.0),
    )
    dispatcher = RateLimitedDispatcher(config)

    assert [dispatcher.backoff_delay(attempt) for attempt in range(4)] == [2.0, 4.0, 8.0, 10.0]


def test_backoff_honours_retry_after_and_jitter() -> None:
    config = DispatcherConfig(
        name="backoff",
        retry=BackoffPolicy(base_delay=2.0, jitter=0.25),
    )
    dispatcher = RateLimitedDispatcher(config, jitter_source=lambda low, high: high)

    assert dispatcher.backoff_delay(0) == pytest.approx(2.5)
    assert dispatcher.backoff_delay(0, retry_after=30.0) == 30.0


def test_single_slot_dispatcher_runs_operations_in_submission_order() -> None:
    events: list[str] = []

    def make_task(name: str) -> Callable[[], Awaitable[str]]:
        async def task() -> str:
            events.append(f"start-{name}")
            await asyncio.sleep(0.01)
            events.append(f"end-{name}")
            return name

        return task

    async def scenario() -> list[str]:
        dispatcher = make_dispatcher(max_concurrent=1)
        return list(
            await asyncio.gather(
                *(dispatcher.schedule(name, make_task(name)) for name in ("a", "b", "c"))
            )
        )

    assert asyncio.run(scenario()) == ["a", "b", "c"]
    assert events == ["start-a", "end-a", "start-b", "end-b", "start-c", "end-c"]


def test_min_spacing_separates_dispatches() -> None:
    async def scenario() -> list[float]:
        loop = asyncio.get_running_loop()
        dispatcher = make_dispatcher(max_concurrent=2, min_spacing=0.05)
        started: list[float] = []

        async def task() -> None:
            started.append(loop.time())

        await asyncio.gather(*(dispatcher.schedule(f"op-{i}", task) for i in range(3)))
        return started

    started = asyncio.run(scenario())

    gaps = [later - earlier for earlier, later in zip(started, started[1:], strict=False)]
    assert all(gap >= 0.04 for gap in gaps)


def test_reservoir_holds_dispatches_until_refill() -> None:
    async def scenario() -> list[float]:
        loop = asyncio.get_running_loop()
        dispatcher = make_dispatcher(max_concurrent=3, reservoir=2, refill_interval=0.2)
        started: list[float] = []

        async def task() -> None:
            started.append(loop.time())

        await asyncio.gather(*(dispatcher.schedule(f"op-{i}", task) for i in range(3)))
        return started

    started = asyncio.run(scenario())

    assert len(started) == 3
    assert started[1] - started[0] < 0.05
    assert started[2] - started[0] >= 0.08


def test_max_concurrent_bounds_operations_in_flight() -> None:
    in_flight = 0
    peak = 0

    async def task() -> None:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1

    async def scenario() -> None:
        dispatcher = make_dispatcher(max_concurrent=2)
        await asyncio.gather(*(dispatcher.schedule(f"op-{i}", task) for i in range(6)))

    asyncio.run(scenario())

    assert peak == 2
    assert in_flight == 0


def test_cancelled_token_prevents_dispatch() -> None:
    called = False

    async def task() -> None:
        nonlocal called
        called = True

    async def scenario() -> None:
        dispatcher = make_dispatcher()
        token = CancellationToken()
        token.cancel()
        await dispatcher.schedule("op", task, token=token)

    with pytest.raises(ProcessingCancelledError):
        asyncio.run(scenario())

    assert called is False


def test_cancellation_interrupts_backoff_sleep() -> None:
    async def limited() -> None:
        raise RateLimitedError(retry_after=30.0)

    async def scenario() -> float:
        loop = asyncio.get_running_loop()
        dispatcher = make_dispatcher(max_attempts=3)
        token = CancellationToken()
        loop.call_later(0.05, token.cancel)
        started = loop.time()
        with pytest.raises(ProcessingCancelledError):
            await dispatcher.schedule("op", limited, token=token)
        return loop.time() - started

    assert asyncio.run(scenario()) < 5.0


def test_token_sleep_returns_after_delay() -> None:
    async def scenario() -> bool:
        token = CancellationToken()
        await token.sleep(0.01)
        return token.cancelled

    assert asyncio.run(scenario()) is False


def test_invalid_dispatcher_config_is_rejected() -> None:
    with pytest.raises(ValueError, match="max_concurrent"):
        DispatcherConfig(name="bad", max_concurrent=0)
    with pytest.raises(ValueError, match="max_attempts"):
        BackoffPolicy(max_attempts=0)
