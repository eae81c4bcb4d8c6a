"""Ports for the collaborators the synchronization engine talks to."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .types import RecordFilter, RecordId, RemoteRecord, SubjectId


@runtime_checkable
class RecordService(Protocol):
    """Remote store of synonym records, addressed by record id for updates."""

    async def fetch_remote_records(self, record_filter: RecordFilter) -> list[RemoteRecord]:
        """Read every matching record; implementations pace their own page requests."""
        ...

    async def create_record(
        self,
        subject_id: SubjectId,
        synonyms: Sequence[str],
    ) -> RemoteRecord: ...

    async def update_record(
        self,
        record_id: RecordId,
        synonyms: Sequence[str],
    ) -> RemoteRecord: ...


@runtime_checkable
class Translator(Protocol):
    async def translate(
        self,
        text: str,
        target_lang: str,
        context: str | None = None,
    ) -> str: ...


@runtime_checkable
class ProgressSink(Protocol):
    """One-way progress notifications; implementations must not block."""

    def report(self, current: int, total: int, message: str) -> None: ...


__all__ = ["ProgressSink", "RecordService", "Translator"]
