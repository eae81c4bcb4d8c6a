"""DeepL configuration values."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_flag, require_env_vars
from .http_resilience import ResilienceConfig

DEEPL_FREE_BASE_URL = "https://api-free.deepl.com/v2/"
DEEPL_PRO_BASE_URL = "https://api.deepl.com/v2/"
DEEPL_TIMEOUT_SECONDS = 20.0


@dataclass(frozen=True, slots=True)
class DeepLConfig:
    """Holds DeepL API configuration values."""

    api_key: str
    is_pro: bool
    resilience: ResilienceConfig


def build_deepl_resilience(*, is_pro: bool) -> ResilienceConfig:
    return ResilienceConfig(
        name="deepl",
        base_url=DEEPL_PRO_BASE_URL if is_pro else DEEPL_FREE_BASE_URL,
        timeout_seconds=DEEPL_TIMEOUT_SECONDS,
    )


def get_deepl_config(*, resilience: ResilienceConfig | None = None) -> DeepLConfig:
    values = require_env_vars(("DEEPL_API_KEY",))
    is_pro = env_flag("DEEPL_IS_PRO")
    return DeepLConfig(
        api_key=values["DEEPL_API_KEY"],
        is_pro=is_pro,
        resilience=resilience or build_deepl_resilience(is_pro=is_pro),
    )
