"""HTTP client for the WaniKani study-material and subject endpoints."""

from __future__ import annotations

import time
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError

from doitsukani.adapters.http_resilience import ResilientClient
from doitsukani.domain.errors import (
    NotFoundError,
    RateLimitedError,
    RemoteServiceError,
    UnauthorizedError,
    ValidationFailedError,
)

from .schema import (
    SUBJECT_OBJECTS,
    ErrorResponse,
    StudyMaterial,
    StudyMaterialCollection,
    StudyMaterialCreatePayload,
    StudyMaterialUpdatePayload,
    SubjectCollection,
)
from .translator import parse_remote_record, parse_work_item

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from types import TracebackType

    from doitsukani.config.http_resilience import ResilienceConfig
    from doitsukani.config.wanikani import WaniKaniConfig
    from doitsukani.domain.dispatch import RateLimitedDispatcher
    from doitsukani.domain.types import (
        RecordFilter,
        RecordId,
        RemoteRecord,
        SubjectId,
        WorkItem,
    )

log = getLogger(__name__)

# Keeps the subject_ids query string well below common URL length limits.
SUBJECT_ID_CHUNK_SIZE = 500


def should_cache_payload(payload: object) -> bool:
    """Only subject collections are cacheable; study materials must always be fresh."""

    if not isinstance(payload, dict) or payload.get("object") != "collection":
        return False
    data = payload.get("data")
    if not isinstance(data, list) or not data:
        return False
    return all(isinstance(item, dict) and item.get("object") in SUBJECT_OBJECTS for item in data)


class WaniKaniClient:
    """Async WaniKani client implementing the record-service port.

    When a ``dispatcher`` is given, every page of a paginated read is scheduled
    through it separately. Callers must therefore not hold a slot of that same
    dispatcher while reading.
    """

    def __init__(
        self,
        *,
        config: WaniKaniConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
        dispatcher: RateLimitedDispatcher | None = None,
    ) -> None:
        self._config = config
        self._dispatcher = dispatcher
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> WaniKaniClient:
        self._client = self._client_factory(self._resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def fetch_remote_records(self, record_filter: RecordFilter) -> list[RemoteRecord]:
        base_params: dict[str, str] = {}
        if record_filter.subject_types:
            base_params["subject_types"] = ",".join(record_filter.subject_types)

        if record_filter.subject_ids is None:
            materials = await self._collect_study_materials(base_params)
        elif not record_filter.subject_ids:
            return []
        else:
            materials = []
            ids = record_filter.subject_ids
            for start in range(0, len(ids), SUBJECT_ID_CHUNK_SIZE):
                chunk = ids[start : start + SUBJECT_ID_CHUNK_SIZE]
                params = {**base_params, "subject_ids": ",".join(str(i) for i in chunk)}
                materials.extend(await self._collect_study_materials(params))

        log.info("Fetched %s study materials", len(materials))
        return [parse_remote_record(material) for material in materials]

    async def create_record(
        self,
        subject_id: SubjectId,
        synonyms: Sequence[str],
    ) -> RemoteRecord:
        payload = StudyMaterialCreatePayload(
            subject_id=subject_id,
            meaning_synonyms=list(synonyms),
        )
        response = await self._request(
            "POST", "study_materials", json={"study_material": payload.model_dump()}
        )
        record = parse_remote_record(_parse(response, StudyMaterial))
        log.debug("Created study material %s for subject %s", record.record_id, subject_id)
        return record

    async def update_record(
        self,
        record_id: RecordId,
        synonyms: Sequence[str],
    ) -> RemoteRecord:
        payload = StudyMaterialUpdatePayload(meaning_synonyms=list(synonyms))
        response = await self._request(
            "PUT", f"study_materials/{record_id}", json={"study_material": payload.model_dump()}
        )
        record = parse_remote_record(_parse(response, StudyMaterial))
        log.debug("Updated study material %s", record_id)
        return record

    async def fetch_subjects(
        self,
        *,
        types: Sequence[str] = ("radical",),
        levels: Sequence[int] | None = None,
    ) -> list[WorkItem]:
        params: dict[str, str] = {"types": ",".join(types)}
        if levels:
            params["levels"] = ",".join(str(level) for level in levels)

        items: list[WorkItem] = []
        next_url: str | None = "subjects"
        request_params: dict[str, str] | None = params
        while next_url is not None:
            response = await self._get_page(next_url, request_params)
            collection = _parse(response, SubjectCollection)
            items.extend(
                parse_work_item(subject)
                for subject in collection.data
                if subject.data.hidden_at is None
            )
            next_url = collection.pages.next_url
            request_params = None
        log.info("Fetched %s subjects (types=%s, levels=%s)", len(items), types, levels)
        return items

    async def _collect_study_materials(self, params: dict[str, str]) -> list[StudyMaterial]:
        materials: list[StudyMaterial] = []
        next_url: str | None = "study_materials"
        request_params: dict[str, str] | None = params
        while next_url is not None:
            response = await self._get_page(next_url, request_params)
            collection = _parse(response, StudyMaterialCollection)
            materials.extend(collection.data)
            # next_url already carries the original query string
            next_url = collection.pages.next_url
            request_params = None
        return materials

    async def _get_page(self, url: str, params: dict[str, str] | None) -> httpx.Response:
        # Each page is its own request against the shared rate limit.
        if self._dispatcher is None:
            return await self._request("GET", url, params=params)
        return await self._dispatcher.schedule(
            f"GET {url}", lambda: self._request("GET", url, params=params)
        )

    async def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, str] | None = None,
        json: object = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("WaniKaniClient must be used as an async context manager")
        try:
            response = await self._client.request(
                method, url, params=params, json=json, headers=self._headers()
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"WaniKani request failed: {exc}") from exc
        raise_for_wanikani_status(response)
        return response

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._config.api_token}"}


def raise_for_wanikani_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    message = _error_message(response)
    if status in {401, 403}:
        raise UnauthorizedError(message)
    if status == 404:
        raise NotFoundError(message)
    if status == 422:
        raise ValidationFailedError(message)
    if status == 429:
        raise RateLimitedError(message, retry_after=_retry_after(response))
    raise RemoteServiceError(message, status_code=status)


def _error_message(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except ValueError:
        return f"WaniKani API error {response.status_code}"
    return f"WaniKani API error {error.code}: {error.error}"


def _retry_after(response: httpx.Response) -> float | None:
    retry_after = response.headers.get("Retry-After")
    if retry_after is not None:
        try:
            return max(float(retry_after), 0.0)
        except ValueError:
            return None
    reset = response.headers.get("RateLimit-Reset")
    if reset is not None:
        try:
            return max(float(reset) - time.time(), 0.0)
        except ValueError:
            return None
    return None



def _parse[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteServiceError(
            f"Unexpected WaniKani response for {response.request.url.path}: {exc}",
            status_code=response.status_code,
        ) from exc
