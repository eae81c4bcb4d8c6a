"""Synchronization defaults for reconciliation runs."""

from __future__ import annotations

import os
from dataclasses import dataclass

from doitsukani.domain.types import SynonymMode

from .errors import ConfigurationError

DEFAULT_BATCH_SIZE = 25
DEFAULT_INTER_BATCH_DELAY_SECONDS = 1.0
DEFAULT_TARGET_LANG = "DE"


@dataclass(frozen=True, slots=True)
class SyncConfig:
    batch_size: int = DEFAULT_BATCH_SIZE
    inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY_SECONDS
    mode: SynonymMode = SynonymMode.SMART_MERGE
    target_lang: str = DEFAULT_TARGET_LANG


def get_sync_config() -> SyncConfig:
    raw_mode = os.getenv("DOITSUKANI_SYNONYM_MODE")
    if raw_mode is None or not raw_mode.strip():
        return SyncConfig()
    try:
        mode = SynonymMode(raw_mode.strip().lower())
    except ValueError as exc:
        raise ConfigurationError(f"Unsupported synonym mode: {raw_mode}") from exc
    return SyncConfig(mode=mode)
