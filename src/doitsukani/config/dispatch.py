"""Rate-limit settings for the per-service dispatch queues."""

from __future__ import annotations

from dataclasses import dataclass, field

# WaniKani documents a hard ceiling of 60 requests per minute. Both the spacing and
# the reservoir hold us to 45 per minute, 75 % of that ceiling.
WANIKANI_HARD_LIMIT_PER_MINUTE = 60
WANIKANI_RESERVOIR = 45
WANIKANI_MIN_SPACING_SECONDS = 60.0 / WANIKANI_RESERVOIR
WANIKANI_REFILL_SECONDS = 60.0

DEEPL_MIN_SPACING_SECONDS = 0.1
DEEPL_RESERVOIR = 500_000
DEEPL_REFILL_SECONDS = 30 * 24 * 60 * 60.0


@dataclass(slots=True, frozen=True)
class BackoffPolicy:
    """Exponential backoff applied when a service answers "too many requests"."""

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    jitter: float = 0.25

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if not 0.0 <= self.jitter < 1.0:
            raise ValueError("jitter must be within [0, 1)")


@dataclass(slots=True, frozen=True)
class DispatcherConfig:
    name: str
    max_concurrent: int = 1
    min_spacing: float = 0.0
    reservoir: int | None = None
    refill_interval: float = 60.0
    retry: BackoffPolicy = field(default_factory=BackoffPolicy)

    def __post_init__(self) -> None:
        if self.max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if self.min_spacing < 0:
            raise ValueError("min_spacing must be non-negative")
        if self.reservoir is not None and self.reservoir < 1:
            raise ValueError("reservoir must be positive when set")


def get_wanikani_dispatch_config() -> DispatcherConfig:
    return DispatcherConfig(
        name="wanikani",
        max_concurrent=1,
        min_spacing=WANIKANI_MIN_SPACING_SECONDS,
        reservoir=WANIKANI_RESERVOIR,
        refill_interval=WANIKANI_REFILL_SECONDS,
        retry=BackoffPolicy(max_attempts=5, base_delay=2.0),
    )


def get_deepl_dispatch_config() -> DispatcherConfig:
    return DispatcherConfig(
        name="deepl",
        max_concurrent=2,
        min_spacing=DEEPL_MIN_SPACING_SECONDS,
        reservoir=DEEPL_RESERVOIR,
        refill_interval=DEEPL_REFILL_SECONDS,
        retry=BackoffPolicy(max_attempts=3, base_delay=1.0),
    )
