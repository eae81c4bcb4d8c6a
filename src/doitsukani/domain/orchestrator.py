"""Batch orchestration of synonym reconciliation runs.

A run moves ``idle -> running -> (completed | cancelled)``. Statistics are reset
and a fresh :class:`ProcessingSession` is minted synchronously when a run starts,
before the first suspension point, so nothing recorded by an earlier run can leak
into the new totals. Work is split into fixed-size batches that execute strictly
one after another. Any exception raised while processing one item is recorded as
that item's failure and the run moves on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from types import MappingProxyType
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from .delta import compute_delta, index_by_subject, plan_operation, snapshot_lookup
from .dispatch import CancellationToken
from .errors import ProcessingCancelledError, SyncError, ValidationFailedError
from .merge_policy import resolve
from .types import (
    CreateOperation,
    ItemResult,
    ItemStatus,
    RecordFilter,
    RunResult,
    RunState,
    SkipOperation,
    SynonymMode,
    UpdateOperation,
    UploadStats,
)

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Mapping, Sequence

    from .dispatch import RateLimitedDispatcher
    from .ports import ProgressSink, RecordService, Translator
    from .types import DesiredRecord, Operation, RemoteRecord, SubjectId, WorkItem

log = getLogger(__name__)

DEFAULT_BATCH_SIZE = 25
DEFAULT_INTER_BATCH_DELAY = 1.0

type Snapshot = Mapping[SubjectId, RemoteRecord]


@dataclass(slots=True)
class ProcessingSession:
    """Run-scoped token; writes made under a superseded session are dropped."""

    session_id: UUID = field(default_factory=uuid4)
    token: CancellationToken = field(default_factory=CancellationToken)
    stats: UploadStats = field(default_factory=UploadStats)
    results: list[ItemResult] = field(default_factory=list["ItemResult"])
    state: RunState = RunState.RUNNING
    total: int = 0
    processed: int = 0


class BatchOrchestrator:
    def __init__(
        self,
        *,
        record_service: RecordService,
        record_dispatcher: RateLimitedDispatcher,
        translator: Translator | None = None,
        translation_dispatcher: RateLimitedDispatcher | None = None,
        progress: ProgressSink | None = None,
        target_lang: str = "DE",
    ) -> None:
        self._records = record_service
        self._record_dispatcher = record_dispatcher
        self._translator = translator
        self._translation_dispatcher = translation_dispatcher
        self._progress = progress
        self._target_lang = target_lang
        self._session: ProcessingSession | None = None
        self._stats = UploadStats()
        self.progress_percent = 0

    @property
    def state(self) -> RunState:
        return self._session.state if self._session is not None else RunState.IDLE

    @property
    def stats(self) -> UploadStats:
        return self._stats.copy()

    @property
    def session_id(self) -> UUID | None:
        return self._session.session_id if self._session is not None else None

    def cancel(self) -> None:
        if self._session is None or self._session.state is not RunState.RUNNING:
            return
        log.info("Cancellation requested for session %s", self._session.session_id)
        self._session.token.cancel()

    async def run(
        self,
        items: Sequence[WorkItem],
        *,
        mode: SynonymMode,
        batch_size: int = DEFAULT_BATCH_SIZE,
        inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY,
    ) -> RunResult:
        """Resolve, plan and apply the synonym policy ``mode`` for every item."""

        _validate_batching(batch_size, inter_batch_delay)
        if mode is not SynonymMode.DELETE and self._translator is None:
            raise ValueError(f"A translator is required for mode {mode}")
        session = self._begin(total=len(items))
        log.info(
            "Starting %s run %s: items=%s, batch_size=%s",
            mode,
            session.session_id,
            len(items),
            batch_size,
        )

        subject_ids = tuple(item.subject_id for item in items)
        snapshot = await self._load_snapshot(session, RecordFilter(subject_ids=subject_ids))
        if snapshot is None:
            return self._finish(session)

        async def handle(item: WorkItem) -> None:
            await self._process_item(session, item, snapshot, mode)

        await self._execute_batches(session, items, handle, batch_size, inter_batch_delay)
        return self._finish(session)

    async def reconcile(
        self,
        desired: Sequence[DesiredRecord],
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        inter_batch_delay: float = DEFAULT_INTER_BATCH_DELAY,
    ) -> RunResult:
        """Union-merge ``desired`` into the remote records via :func:`compute_delta`."""

        _validate_batching(batch_size, inter_batch_delay)
        session = self._begin(total=len(desired))
        log.info("Starting reconcile run %s: desired=%s", session.session_id, len(desired))

        subject_ids = tuple(record.subject_id for record in desired)
        snapshot = await self._load_snapshot(session, RecordFilter(subject_ids=subject_ids))
        if snapshot is None:
            return self._finish(session)

        delta = compute_delta(snapshot.values(), desired)
        log.info(
            "Delta for run %s: create=%s, update=%s, unchanged=%s",
            session.session_id,
            len(delta.to_create),
            len(delta.to_update),
            len(delta.unchanged),
        )
        for subject_id in delta.unchanged:
            self._record_outcome(session, subject_id, ItemStatus.SKIPPED, "already up to date")

        operations: list[Operation] = [*delta.to_create, *delta.to_update]

        async def handle(operation: Operation) -> None:
            await self._apply_operation(session, operation, subject_id=_subject_of(operation))

        await self._execute_batches(session, operations, handle, batch_size, inter_batch_delay)
        return self._finish(session)

    def _begin(self, *, total: int) -> ProcessingSession:
        previous = self._session
        if previous is not None and previous.state is RunState.RUNNING:
            log.warning("Superseding running session %s", previous.session_id)
            previous.token.cancel()
        session = ProcessingSession(total=total)
        self._session = session
        self._stats = session.stats
        self.progress_percent = 0
        return session

    def _finish(self, session: ProcessingSession) -> RunResult:
        if session.state is RunState.RUNNING:
            session.state = RunState.CANCELLED if session.token.cancelled else RunState.COMPLETED
        result = RunResult(
            session_id=session.session_id,
            state=session.state,
            stats=session.stats.copy(),
            total=session.total,
            processed=session.processed,
            results=list(session.results),
        )
        log.info("Run %s finished. %s", session.session_id, result.status_message)
        return result

    async def _load_snapshot(
        self,
        session: ProcessingSession,
        record_filter: RecordFilter,
    ) -> Snapshot | None:
        try:
            records = await session.token.guard(self._records.fetch_remote_records(record_filter))
        except ProcessingCancelledError:
            session.state = RunState.CANCELLED
            return None
        except Exception:
            log.exception("Could not load remote records for run %s", session.session_id)
            session.state = RunState.FAILED
            raise
        return MappingProxyType(index_by_subject(records))

    async def _execute_batches[T](
        self,
        session: ProcessingSession,
        units: Sequence[T],
        handle: Callable[[T], Awaitable[None]],
        batch_size: int,
        inter_batch_delay: float,
    ) -> None:
        batches = [units[start : start + batch_size] for start in range(0, len(units), batch_size)]
        for index, batch in enumerate(batches, start=1):
            for unit in batch:
                if session.token.cancelled:
                    log.info(
                        "Run %s stopped in batch %s/%s", session.session_id, index, len(batches)
                    )
                    return
                await handle(unit)
            self._report_progress(session, f"Batch {index}/{len(batches)} done")
            if index < len(batches):
                try:
                    await session.token.sleep(inter_batch_delay)
                except ProcessingCancelledError:
                    return

    async def _process_item(
        self,
        session: ProcessingSession,
        item: WorkItem,
        snapshot: Snapshot,
        mode: SynonymMode,
    ) -> None:
        log.debug(
            "Processing subject %s %s (level %s): %r",
            item.subject_id,
            item.characters or "-",
            item.level,
            item.meaning,
        )
        record, existing = snapshot_lookup(snapshot, item.subject_id)

        candidate: str | None = None
        if mode is not SynonymMode.DELETE and item.meaning.strip():
            try:
                candidate = await self._translate(session, item)
            except ProcessingCancelledError:
                return
            except Exception as exc:
                if not session.token.cancelled:
                    self._record_failure(
                        session, item.subject_id, f"Translation failed: {exc}", exc
                    )
                return

        resolution = resolve(mode, existing, candidate)
        operation = plan_operation(item.subject_id, record, resolution, mode=mode)
        await self._apply_operation(session, operation, subject_id=item.subject_id)

    async def _translate(self, session: ProcessingSession, item: WorkItem) -> str:
        translator = self._translator
        if translator is None:
            raise ValueError("No translator configured")

        async def task() -> str:
            return await translator.translate(item.meaning, self._target_lang, item.context)

        if self._translation_dispatcher is None:
            session.token.raise_if_cancelled()
            translation = await task()
        else:
            translation = await self._translation_dispatcher.schedule(
                f"translate-{item.subject_id}", task, token=session.token
            )
        log.debug("Translated %r -> %r", item.meaning, translation)
        return translation.strip()

    async def _apply_operation(
        self,
        session: ProcessingSession,
        operation: Operation,
        *,
        subject_id: SubjectId,
    ) -> None:
        records = self._records
        try:
            match operation:
                case SkipOperation(reason=reason):
                    self._record_outcome(session, subject_id, ItemStatus.SKIPPED, reason)
                case CreateOperation(subject_id=target, synonyms=synonyms):
                    await self._record_dispatcher.schedule(
                        f"create-{target}",
                        lambda: records.create_record(target, synonyms),
                        token=session.token,
                    )
                    self._record_outcome(
                        session, subject_id, ItemStatus.CREATED, f"created {list(synonyms)}"
                    )
                case UpdateOperation(record_id=record_id, synonyms=synonyms):
                    await self._record_dispatcher.schedule(
                        f"update-{subject_id}",
                        lambda: records.update_record(record_id, synonyms),
                        token=session.token,
                    )
                    self._record_outcome(
                        session, subject_id, ItemStatus.UPDATED, f"updated {list(synonyms)}"
                    )
        except ProcessingCancelledError:
            return
        except Exception as exc:
            if session.token.cancelled:
                log.info("Ignoring failure of %s after cancellation: %s", subject_id, exc)
                return
            self._record_failure(session, subject_id, f"Upload failed: {exc}", exc)

    def _record_outcome(
        self,
        session: ProcessingSession,
        subject_id: SubjectId,
        status: ItemStatus,
        message: str,
    ) -> None:
        if session is not self._session:
            log.debug(
                "Dropping %s for %s from stale session %s", status, subject_id, session.session_id
            )
            return
        stats = session.stats
        match status:
            case ItemStatus.CREATED:
                stats.created += 1
                stats.successful += 1
            case ItemStatus.UPDATED:
                stats.updated += 1
                stats.successful += 1
            case ItemStatus.SKIPPED:
                stats.skipped += 1
                stats.successful += 1
            case ItemStatus.FAILED:
                stats.failed += 1
        session.processed += 1
        session.results.append(ItemResult(subject_id=subject_id, status=status, message=message))

    def _record_failure(
        self,
        session: ProcessingSession,
        subject_id: SubjectId,
        message: str,
        exc: Exception,
    ) -> None:
        if isinstance(exc, ValidationFailedError):
            log.error("Service rejected payload for subject %s: %s", subject_id, exc.detail)
        elif isinstance(exc, SyncError):
            log.warning("Subject %s failed: %s", subject_id, exc)
        else:
            log.exception("Unexpected error while processing subject %s", subject_id)
        self._record_outcome(session, subject_id, ItemStatus.FAILED, message)

    def _report_progress(self, session: ProcessingSession, message: str) -> None:
        if session is not self._session:
            return
        total = session.total
        self.progress_percent = round(session.processed / total * 100) if total else 100
        if self._progress is None:
            return
        try:
            self._progress.report(session.processed, total, f"{message} ({self.progress_percent}%)")
        except Exception:
            log.exception("Progress sink failed")


def _validate_batching(batch_size: int, inter_batch_delay: float) -> None:
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    if inter_batch_delay < 0:
        raise ValueError("inter_batch_delay must be non-negative")


def _subject_of(operation: Operation) -> SubjectId:
    match operation:
        case CreateOperation(subject_id=subject_id):
            return subject_id
        case UpdateOperation(subject_id=subject_id, record_id=record_id):
            if subject_id is None:
                raise ValueError(f"Update for record {record_id} carries no subject")
            return subject_id
        case SkipOperation(subject_id=subject_id, reason=reason):
            if subject_id is None:
                raise ValueError(f"Skip ({reason}) carries no subject")
            return subject_id

