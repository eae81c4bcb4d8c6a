"""Translate WaniKani payloads into domain types."""

from __future__ import annotations

from typing import TYPE_CHECKING

from doitsukani.adapters.deepl.context import extract_mnemonic_context
from doitsukani.domain.types import RecordId, RemoteRecord, SubjectId, WorkItem

if TYPE_CHECKING:
    from .schema import StudyMaterial, Subject

UNKNOWN_MEANING = "Unknown"


def parse_remote_record(material: StudyMaterial) -> RemoteRecord:
    return RemoteRecord(
        record_id=RecordId(material.id),
        subject_id=SubjectId(material.data.subject_id),
        synonyms=tuple(material.data.meaning_synonyms),
    )


def parse_work_item(subject: Subject) -> WorkItem:
    meaning = subject.data.primary_meaning or UNKNOWN_MEANING
    return WorkItem(
        subject_id=SubjectId(subject.id),
        meaning=meaning,
        context=extract_mnemonic_context(subject.data.meaning_mnemonic, meaning),
        level=subject.data.level,
        characters=subject.data.characters,
    )
