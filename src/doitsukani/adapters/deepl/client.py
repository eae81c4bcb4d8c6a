"""HTTP client for the DeepL translation API."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError

from doitsukani.adapters.http_resilience import ResilientClient
from doitsukani.domain.errors import (
    QuotaExceededError,
    RateLimitedError,
    RemoteServiceError,
    UnauthorizedError,
)

from .schema import ErrorResponse, TranslateRequest, TranslateResponse, UsageResponse

if TYPE_CHECKING:
    from collections.abc import Callable
    from types import TracebackType

    from doitsukani.config.deepl import DeepLConfig
    from doitsukani.config.http_resilience import ResilienceConfig

log = getLogger(__name__)

SOURCE_LANG = "EN"
HTTP_QUOTA_EXCEEDED = 456


class DeepLClient:
    """Async DeepL client implementing the translator port."""

    def __init__(
        self,
        *,
        config: DeepLConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        if not config.api_key.strip():
            raise ValueError("DeepL API key is required")
        self._config = config
        self._resilience = config.resilience
        self._client_factory = client_factory or ResilientClient
        self._client: ResilientClient | None = None

    async def __aenter__(self) -> DeepLClient:
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

    async def translate(
        self,
        text: str,
        target_lang: str,
        context: str | None = None,
    ) -> str:
        if not text or not text.strip():
            raise ValueError("Text cannot be empty")

        # DeepL leaves capitalised words untranslated as proper nouns ("Bamboo").
        request = TranslateRequest(
            text=[text.strip().lower()],
            target_lang=target_lang,
            source_lang=SOURCE_LANG,
            context=context or None,
        )
        response = await self._request(
            "POST", "translate", json=request.model_dump(exclude_none=True)
        )
        payload = _parse(response, TranslateResponse)
        if not payload.translations:
            raise RemoteServiceError("DeepL returned no translation")
        translation = payload.translations[0].text
        log.debug("DeepL %s -> %s: %r -> %r", SOURCE_LANG, target_lang, text, translation)
        return translation

    async def fetch_usage(self) -> UsageResponse:
        response = await self._request("GET", "usage")
        return _parse(response, UsageResponse)

    async def _request(
        self,
        method: str,
        url: str,
        *,
        json: object = None,
    ) -> httpx.Response:
        if self._client is None:
            raise RuntimeError("DeepLClient must be used as an async context manager")
        try:
            response = await self._client.request(
                method,
                url,
                json=json,
                headers={"Authorization": f"DeepL-Auth-Key {self._config.api_key}"},
            )
        except httpx.HTTPError as exc:
            raise RemoteServiceError(f"DeepL request failed: {exc}") from exc
        raise_for_deepl_status(response)
        return response


def raise_for_deepl_status(response: httpx.Response) -> None:
    status = response.status_code
    if status < 400:
        return
    message = _error_message(response)
    if status == 403:
        raise UnauthorizedError(message)
    if status == 429:
        raise RateLimitedError(message)
    if status == HTTP_QUOTA_EXCEEDED:
        raise QuotaExceededError(message)
    raise RemoteServiceError(message, status_code=status)


def _error_message(response: httpx.Response) -> str:
    try:
        error = ErrorResponse.model_validate(response.json())
    except ValueError:
        return f"DeepL API error {response.status_code}"
    return f"DeepL API error {response.status_code}: {error.message}"


def _parse[M: BaseModel](response: httpx.Response, model: type[M]) -> M:
    try:
        return model.model_validate(response.json())
    except (ValueError, ValidationError) as exc:
        raise RemoteServiceError(
            f"Unexpected DeepL response: {exc}", status_code=response.status_code
        ) from exc
