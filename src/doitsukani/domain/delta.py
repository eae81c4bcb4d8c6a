"""Create/update planning against a snapshot of remote records.

Two entry points share the same identifier rules:

- :func:`compute_delta` reconciles a whole desired set by union-merging new
  synonyms into existing records (bulk imports).
- :func:`plan_operation` turns one subject's resolved merge policy into a single
  operation (interactive runs, where the policy may shrink or replace a list).

Updates always address the matched :class:`RemoteRecord` by its own
``record_id``. Sending a subject id as the record id makes the service reject the
request against the wrong resource.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

from .normalization import is_subset, normalize
from .types import CreateOperation, SkipOperation, SynonymMode, UpdateOperation

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from .merge_policy import MergeResolution
    from .types import DesiredRecord, Operation, RemoteRecord, SubjectId

log = getLogger(__name__)

SKIP_NOTHING_TO_CREATE = "nothing to create"
SKIP_UNCHANGED = "unchanged"


@dataclass(slots=True)
class Delta:
    to_create: list[CreateOperation] = field(default_factory=list["CreateOperation"])
    to_update: list[UpdateOperation] = field(default_factory=list["UpdateOperation"])
    unchanged: list[SubjectId] = field(default_factory=list["SubjectId"])

    @property
    def operation_count(self) -> int:
        return len(self.to_create) + len(self.to_update)


def index_by_subject(remote: Iterable[RemoteRecord]) -> dict[SubjectId, RemoteRecord]:
    """Index remote records by subject; the first record seen for a subject wins."""

    index: dict[SubjectId, RemoteRecord] = {}
    for record in remote:
        if record.subject_id in index:
            log.warning(
                "Ignoring duplicate record %s for subject %s (keeping %s)",
                record.record_id,
                record.subject_id,
                index[record.subject_id].record_id,
            )
            continue
        index[record.subject_id] = record
    return index


def compute_delta(
    remote: Iterable[RemoteRecord],
    desired: Iterable[DesiredRecord],
) -> Delta:
    remote_by_subject = index_by_subject(remote)
    delta = Delta()
    for wanted in desired:
        record = remote_by_subject.get(wanted.subject_id)
        if record is None:
            delta.to_create.append(
                CreateOperation(
                    subject_id=wanted.subject_id,
                    synonyms=tuple(normalize(wanted.synonyms)),
                )
            )
            continue
        if is_subset(wanted.synonyms, record.synonyms):
            delta.unchanged.append(wanted.subject_id)
            continue
        delta.to_update.append(
            UpdateOperation(
                record_id=record.record_id,
                synonyms=tuple(normalize([*record.synonyms, *wanted.synonyms])),
                subject_id=record.subject_id,
            )
        )
    return delta


def plan_operation(
    subject_id: SubjectId,
    record: RemoteRecord | None,
    resolution: MergeResolution,
    *,
    mode: SynonymMode,
) -> Operation:
    if resolution.skip_reason is not None:
        return SkipOperation(reason=resolution.skip_reason, subject_id=subject_id)

    if mode is SynonymMode.ADD:
        synonyms = tuple(value for value in resolution.desired if value.strip())
    else:
        synonyms = tuple(normalize(resolution.desired))

    if record is None:
        if not synonyms:
            return SkipOperation(reason=SKIP_NOTHING_TO_CREATE, subject_id=subject_id)
        return CreateOperation(subject_id=subject_id, synonyms=synonyms)

    if synonyms == record.synonyms:
        return SkipOperation(reason=SKIP_UNCHANGED, subject_id=subject_id)
    return UpdateOperation(record_id=record.record_id, synonyms=synonyms, subject_id=subject_id)


def snapshot_lookup(
    snapshot: Mapping[SubjectId, RemoteRecord],
    subject_id: SubjectId,
) -> tuple[RemoteRecord | None, tuple[str, ...]]:
    record = snapshot.get(subject_id)
    return record, (record.synonyms if record is not None else ())
