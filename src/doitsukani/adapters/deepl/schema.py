"""Pydantic models describing the DeepL API payloads."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class DeepLBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class TranslateRequest(DeepLBaseModel):
    text: list[str]
    target_lang: str
    source_lang: str = "EN"
    context: str | None = None


class Translation(DeepLBaseModel):
    text: str
    detected_source_language: str | None = None


class TranslateResponse(DeepLBaseModel):
    translations: list[Translation] = Field(default_factory=list[Translation])


class UsageResponse(DeepLBaseModel):
    character_count: int
    character_limit: int

    @property
    def remaining(self) -> int:
        return max(self.character_limit - self.character_count, 0)


class ErrorResponse(DeepLBaseModel):
    message: str
