"""WaniKani configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import require_env_vars
from .http_resilience import CacheConfig, ResilienceConfig, ShouldCacheHook

WANIKANI_BASE_URL = "https://api.wanikani.com/v2/"
WANIKANI_REVISION = "20170710"
WANIKANI_TIMEOUT_SECONDS = 15.0
SUBJECT_CACHE_TTL_SECONDS = 24 * 60 * 60.0


@dataclass(frozen=True, slots=True)
class WaniKaniConfig:
    """Holds WaniKani API configuration values."""

    api_token: str
    resilience: ResilienceConfig


def build_wanikani_resilience(
    *,
    cache_predicate: ShouldCacheHook | None = None,
) -> ResilienceConfig:
    return ResilienceConfig(
        name="wanikani",
        base_url=WANIKANI_BASE_URL,
        timeout_seconds=WANIKANI_TIMEOUT_SECONDS,
        cache=CacheConfig(
            backend="sqlite",
            default_ttl_seconds=SUBJECT_CACHE_TTL_SECONDS,
            should_cache=cache_predicate,
        )
        if cache_predicate is not None
        else None,
        default_headers={"Wanikani-Revision": WANIKANI_REVISION},
    )


def get_wanikani_config(
    *,
    resilience: ResilienceConfig | None = None,
    cache_predicate: ShouldCacheHook | None = None,
) -> WaniKaniConfig:
    values = require_env_vars(("WANIKANI_API_TOKEN",))
    return WaniKaniConfig(
        api_token=values["WANIKANI_API_TOKEN"],
        resilience=resilience or build_wanikani_resilience(cache_predicate=cache_predicate),
    )
