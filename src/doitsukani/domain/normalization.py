"""Case-insensitive deduplication and capacity capping of synonym lists.

The remote service rejects synonym lists that contain duplicates (compared
case-insensitively) or more than :data:`MAX_SYNONYMS` entries. Every list that
leaves this package for the service goes through :func:`normalize`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Final

if TYPE_CHECKING:
    from collections.abc import Iterable

MAX_SYNONYMS: Final[int] = 8


def synonym_key(value: str) -> str:
    return value.strip().casefold()


def normalize(values: Iterable[str]) -> list[str]:
    """Trim, drop blanks, dedupe case-insensitively and cap at ``MAX_SYNONYMS``.

    The first-seen casing of each synonym is kept and the input order is preserved.
    """

    result: list[str] = []
    seen: set[str] = set()
    for value in values:
        stripped = value.strip()
        if not stripped:
            continue
        key = stripped.casefold()
        if key in seen:
            continue
        seen.add(key)
        result.append(stripped)
        if len(result) == MAX_SYNONYMS:
            break
    return result


def contains_synonym(values: Iterable[str], candidate: str) -> bool:
    key = synonym_key(candidate)
    return any(synonym_key(value) == key for value in values)


def is_subset(candidate: Iterable[str], existing: Iterable[str]) -> bool:
    """Return whether every non-blank ``candidate`` entry is already in ``existing``."""

    existing_keys = {synonym_key(value) for value in existing}
    return all(synonym_key(value) in existing_keys for value in candidate if value.strip())
