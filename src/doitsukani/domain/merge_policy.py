"""Per-mode rules for deriving the desired synonym list of one subject."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .normalization import contains_synonym, normalize
from .types import SynonymMode

if TYPE_CHECKING:
    from collections.abc import Sequence

SKIP_NO_CANDIDATE = "no candidate"
SKIP_ALREADY_PRESENT = "already present"
SKIP_ALREADY_EMPTY = "already empty"


@dataclass(slots=True, frozen=True)
class MergeResolution:
    """Desired synonyms for a subject; ``skip_reason`` means no request is needed."""

    desired: tuple[str, ...]
    skip_reason: str | None = None

    @property
    def is_skip(self) -> bool:
        return self.skip_reason is not None


def resolve(
    mode: SynonymMode,
    existing: Sequence[str],
    candidate: str | None,
) -> MergeResolution:
    match mode:
        case SynonymMode.REPLACE:
            return resolve_replace(existing, candidate)
        case SynonymMode.SMART_MERGE:
            return resolve_smart_merge(existing, candidate)
        case SynonymMode.DELETE:
            return resolve_delete(existing)
        case SynonymMode.ADD:
            return resolve_add(existing, candidate)


def resolve_replace(existing: Sequence[str], candidate: str | None) -> MergeResolution:
    if candidate is None or not candidate.strip():
        return MergeResolution(desired=tuple(existing), skip_reason=SKIP_NO_CANDIDATE)
    return MergeResolution(desired=tuple(normalize([candidate])))


def resolve_smart_merge(existing: Sequence[str], candidate: str | None) -> MergeResolution:
    current = tuple(normalize(existing))
    if candidate is None or not candidate.strip():
        return MergeResolution(desired=current, skip_reason=SKIP_NO_CANDIDATE)
    if contains_synonym(existing, candidate):
        return MergeResolution(desired=current, skip_reason=SKIP_ALREADY_PRESENT)
    return MergeResolution(desired=tuple(normalize([*existing, candidate])))


def resolve_delete(existing: Sequence[str]) -> MergeResolution:
    if not existing:
        return MergeResolution(desired=(), skip_reason=SKIP_ALREADY_EMPTY)
    return MergeResolution(desired=())


def resolve_add(existing: Sequence[str], candidate: str | None) -> MergeResolution:
    """Legacy append: duplicates are preserved and no cap is applied."""

    if candidate is None or not candidate.strip():
        return MergeResolution(desired=tuple(existing), skip_reason=SKIP_NO_CANDIDATE)
    return MergeResolution(desired=(*existing, candidate.strip()))
