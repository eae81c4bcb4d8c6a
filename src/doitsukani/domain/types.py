"""Domain types shared by the policy, delta and orchestration stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, NewType

if TYPE_CHECKING:
    from uuid import UUID

SubjectId = NewType("SubjectId", int)
RecordId = NewType("RecordId", int)


class SynonymMode(StrEnum):
    """Merge policy applied when deriving the desired synonym list."""

    REPLACE = "replace"
    SMART_MERGE = "smart-merge"
    DELETE = "delete"
    # Legacy policy: appends without deduplication. Kept separate from SMART_MERGE.
    ADD = "add"


@dataclass(slots=True, frozen=True)
class RemoteRecord:
    """Snapshot of a study-material record stored by the remote service.

    ``record_id`` addresses the record itself and ``subject_id`` the content item it
    annotates. The two live in different identifier spaces and are never
    interchangeable.
    """

    record_id: RecordId
    subject_id: SubjectId
    synonyms: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class DesiredRecord:
    subject_id: SubjectId
    synonyms: tuple[str, ...] = ()


@dataclass(slots=True, frozen=True)
class CreateOperation:
    subject_id: SubjectId
    synonyms: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class UpdateOperation:
    """Replace the synonyms of an existing record.

    ``subject_id`` is carried for logging only; requests address ``record_id``.
    """

    record_id: RecordId
    synonyms: tuple[str, ...]
    subject_id: SubjectId | None = None


@dataclass(slots=True, frozen=True)
class SkipOperation:
    reason: str
    subject_id: SubjectId | None = None


type Operation = CreateOperation | UpdateOperation | SkipOperation


@dataclass(slots=True, frozen=True)
class RecordFilter:
    subject_ids: tuple[SubjectId, ...] | None = None
    subject_types: tuple[str, ...] | None = None


@dataclass(slots=True, frozen=True)
class WorkItem:
    """A subject selected for synonym processing."""

    subject_id: SubjectId
    meaning: str
    context: str | None = None
    level: int | None = None
    characters: str | None = None


@dataclass(slots=True)
class UploadStats:
    created: int = 0
    updated: int = 0
    skipped: int = 0
    failed: int = 0
    successful: int = 0

    def copy(self) -> UploadStats:
        return UploadStats(
            created=self.created,
            updated=self.updated,
            skipped=self.skipped,
            failed=self.failed,
            successful=self.successful,
        )


class ItemStatus(StrEnum):
    CREATED = "created"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True, frozen=True)
class ItemResult:
    subject_id: SubjectId
    status: ItemStatus
    message: str


class RunState(StrEnum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(slots=True)
class RunResult:
    """Outcome of one reconciliation run."""

    session_id: UUID
    state: RunState
    stats: UploadStats
    total: int
    processed: int
    results: list[ItemResult] = field(default_factory=list["ItemResult"])

    @property
    def failures(self) -> list[ItemResult]:
        return [result for result in self.results if result.status is ItemStatus.FAILED]

    @property
    def status_message(self) -> str:
        prefix = {
            RunState.CANCELLED: "Cancelled",
            RunState.FAILED: "Failed",
        }.get(self.state, "Completed")
        details = [
            f"{count} {label}"
            for count, label in (
                (self.stats.created, "created"),
                (self.stats.updated, "updated"),
                (self.stats.skipped, "skipped"),
                (self.stats.failed, "failed"),
            )
            if count
        ]
        message = f"{prefix}: {self.stats.successful}/{self.total} successful"
        if details:
            message += f" ({', '.join(details)})"
        return message + "."
