"""Pydantic models describing the WaniKani API payloads."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

SubjectObject = Literal["radical", "kanji", "vocabulary", "kana_vocabulary"]
SUBJECT_OBJECTS: frozenset[str] = frozenset({"radical", "kanji", "vocabulary", "kana_vocabulary"})


class WaniKaniBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class Pages(WaniKaniBaseModel):
    per_page: int
    next_url: str | None = None
    previous_url: str | None = None


class StudyMaterialData(WaniKaniBaseModel):
    subject_id: int
    subject_type: str | None = None
    meaning_note: str | None = None
    reading_note: str | None = None
    meaning_synonyms: list[str] = Field(default_factory=list[str])
    hidden: bool = False


class StudyMaterial(WaniKaniBaseModel):
    id: int
    object: Literal["study_material"]
    data: StudyMaterialData


class StudyMaterialCollection(WaniKaniBaseModel):
    object: Literal["collection"]
    pages: Pages
    total_count: int
    data: list[StudyMaterial]


class Meaning(WaniKaniBaseModel):
    meaning: str
    primary: bool
    accepted_answer: bool = True


class SubjectData(WaniKaniBaseModel):
    level: int
    slug: str | None = None
    characters: str | None = None
    meanings: list[Meaning] = Field(default_factory=list[Meaning])
    meaning_mnemonic: str | None = None
    hidden_at: str | None = None

    @property
    def primary_meaning(self) -> str | None:
        for meaning in self.meanings:
            if meaning.primary:
                return meaning.meaning
        return self.meanings[0].meaning if self.meanings else None


class Subject(WaniKaniBaseModel):
    id: int
    object: SubjectObject
    data: SubjectData


class SubjectCollection(WaniKaniBaseModel):
    object: Literal["collection"]
    pages: Pages
    total_count: int
    data: list[Subject]


class StudyMaterialCreatePayload(WaniKaniBaseModel):
    subject_id: int
    meaning_synonyms: list[str]


class StudyMaterialUpdatePayload(WaniKaniBaseModel):
    meaning_synonyms: list[str]


class ErrorResponse(WaniKaniBaseModel):
    error: str
    code: int
