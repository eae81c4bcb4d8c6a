"""Public interface for the WaniKani adapter."""

from __future__ import annotations

from .client import WaniKaniClient, raise_for_wanikani_status, should_cache_payload
from .schema import StudyMaterial, StudyMaterialCollection, Subject, SubjectCollection
from .translator import parse_remote_record, parse_work_item

__all__ = [
    "StudyMaterial",
    "StudyMaterialCollection",
    "Subject",
    "SubjectCollection",
    "WaniKaniClient",
    "parse_remote_record",
    "parse_work_item",
    "raise_for_wanikani_status",
    "should_cache_payload",
]
