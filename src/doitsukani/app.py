"""Application orchestration entry points."""

from __future__ import annotations

import asyncio
import json
from contextlib import AsyncExitStack, contextmanager, suppress
from logging import getLogger
from pathlib import Path
from signal import SIGINT
from typing import TYPE_CHECKING

from doitsukani.adapters.deepl import DeepLClient
from doitsukani.adapters.progress import LoggingProgressSink
from doitsukani.adapters.wanikani import WaniKaniClient, should_cache_payload
from doitsukani.config import (
    get_deepl_config,
    get_deepl_dispatch_config,
    get_sync_config,
    get_wanikani_config,
    get_wanikani_dispatch_config,
)
from doitsukani.domain.dispatch import RateLimitedDispatcher
from doitsukani.domain.orchestrator import BatchOrchestrator
from doitsukani.domain.types import DesiredRecord, SubjectId, SynonymMode

if TYPE_CHECKING:
    from collections.abc import Iterator, Sequence

    from doitsukani.adapters.deepl.schema import UsageResponse
    from doitsukani.domain.ports import ProgressSink
    from doitsukani.domain.types import RunResult

log = getLogger(__name__)

DEFAULT_SUBJECT_TYPES: tuple[str, ...] = ("radical",)


async def sync_synonyms_async(
    *,
    mode: SynonymMode | None = None,
    levels: Sequence[int] | None = None,
    subject_types: Sequence[str] = DEFAULT_SUBJECT_TYPES,
    batch_size: int | None = None,
    inter_batch_delay: float | None = None,
    progress: ProgressSink | None = None,
) -> RunResult:
    """Translate subject meanings and write them back as study-material synonyms."""

    sync_config = get_sync_config()
    effective_mode = mode or sync_config.mode
    effective_batch_size = batch_size if batch_size is not None else sync_config.batch_size
    effective_delay = (
        inter_batch_delay if inter_batch_delay is not None else sync_config.inter_batch_delay
    )
    log.info(
        "Starting synonym sync: mode=%s, levels=%s, types=%s, batch_size=%s",
        effective_mode,
        levels,
        list(subject_types),
        effective_batch_size,
    )

    record_dispatcher = RateLimitedDispatcher(get_wanikani_dispatch_config())
    async with AsyncExitStack() as stack:
        wanikani = await stack.enter_async_context(
            WaniKaniClient(
                config=get_wanikani_config(cache_predicate=should_cache_payload),
                dispatcher=record_dispatcher,
            )
        )
        translator: DeepLClient | None = None
        translation_dispatcher: RateLimitedDispatcher | None = None
        if effective_mode is not SynonymMode.DELETE:
            translator = await stack.enter_async_context(DeepLClient(config=get_deepl_config()))
            translation_dispatcher = RateLimitedDispatcher(get_deepl_dispatch_config())

        items = await wanikani.fetch_subjects(types=subject_types, levels=levels)
        if not items:
            log.warning("No subjects matched levels=%s, types=%s", levels, list(subject_types))

        orchestrator = BatchOrchestrator(
            record_service=wanikani,
            record_dispatcher=record_dispatcher,
            translator=translator,
            translation_dispatcher=translation_dispatcher,
            progress=progress or LoggingProgressSink(),
            target_lang=sync_config.target_lang,
        )
        with _cancel_on_sigint(orchestrator):
            result = await orchestrator.run(
                items,
                mode=effective_mode,
                batch_size=effective_batch_size,
                inter_batch_delay=effective_delay,
            )

    for failure in result.failures:
        log.warning("Subject %s failed: %s", failure.subject_id, failure.message)
    return result


def sync_synonyms(
    *,
    mode: SynonymMode | None = None,
    levels: Sequence[int] | None = None,
    subject_types: Sequence[str] = DEFAULT_SUBJECT_TYPES,
    batch_size: int | None = None,
    inter_batch_delay: float | None = None,
) -> RunResult:
    return asyncio.run(
        sync_synonyms_async(
            mode=mode,
            levels=levels,
            subject_types=subject_types,
            batch_size=batch_size,
            inter_batch_delay=inter_batch_delay,
        )
    )


def load_translations(path: Path) -> list[DesiredRecord]:
    """Read a ``{"<subject_id>": ["synonym", ...]}`` JSON file."""

    with path.open(encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{path} must contain a JSON object")

    desired: list[DesiredRecord] = []
    for key, synonyms in payload.items():
        try:
            subject_id = SubjectId(int(key))
        except ValueError as exc:
            raise ValueError(f"Invalid subject id in {path}: {key!r}") from exc
        if not isinstance(synonyms, list) or not all(isinstance(s, str) for s in synonyms):
            raise ValueError(f"Synonyms for subject {key} must be a list of strings")
        desired.append(DesiredRecord(subject_id=subject_id, synonyms=tuple(synonyms)))
    return desired


async def import_translations_async(
    path: Path | str,
    *,
    batch_size: int | None = None,
    inter_batch_delay: float | None = None,
    progress: ProgressSink | None = None,
) -> RunResult:
    """Union-merge a prepared translation file into the remote study materials."""

    desired = load_translations(Path(path))
    sync_config = get_sync_config()
    log.info("Importing %s translations from %s", len(desired), path)

    record_dispatcher = RateLimitedDispatcher(get_wanikani_dispatch_config())
    async with WaniKaniClient(
        config=get_wanikani_config(), dispatcher=record_dispatcher
    ) as wanikani:
        orchestrator = BatchOrchestrator(
            record_service=wanikani,
            record_dispatcher=record_dispatcher,
            progress=progress or LoggingProgressSink(),
        )
        with _cancel_on_sigint(orchestrator):
            return await orchestrator.reconcile(
                desired,
                batch_size=batch_size if batch_size is not None else sync_config.batch_size,
                inter_batch_delay=(
                    inter_batch_delay
                    if inter_batch_delay is not None
                    else sync_config.inter_batch_delay
                ),
            )


def import_translations(
    path: Path | str,
    *,
    batch_size: int | None = None,
    inter_batch_delay: float | None = None,
) -> RunResult:
    return asyncio.run(
        import_translations_async(
            path, batch_size=batch_size, inter_batch_delay=inter_batch_delay
        )
    )


async def fetch_deepl_usage_async() -> UsageResponse:
    async with DeepLClient(config=get_deepl_config()) as deepl:
        return await deepl.fetch_usage()


def fetch_deepl_usage() -> UsageResponse:
    return asyncio.run(fetch_deepl_usage_async())


@contextmanager
def _cancel_on_sigint(orchestrator: BatchOrchestrator) -> Iterator[None]:
    loop = asyncio.get_running_loop()
    installed = False
    # Unsupported on Windows event loops and outside the main thread.
    with suppress(NotImplementedError, RuntimeError, ValueError):
        loop.add_signal_handler(SIGINT, orchestrator.cancel)
        installed = True
    try:
        yield
    finally:
        if installed:
            loop.remove_signal_handler(SIGINT)
