from __future__ import annotations

import asyncio
import json
from collections.abc import Callable  # noqa: TC003

import httpx
import pytest

from doitsukani.adapters.deepl import DeepLClient, UsageResponse
from doitsukani.adapters.http_resilience import ResilienceConfig, ResilientClient
from doitsukani.config.deepl import DEEPL_PRO_BASE_URL, DeepLConfig, build_deepl_resilience
from doitsukani.domain.errors import (
    QuotaExceededError,
    RateLimitedError,
    RemoteServiceError,
    UnauthorizedError,
)


def _make_client_factory(
    handler: Callable[[httpx.Request], httpx.Response],
) -> Callable[[ResilienceConfig], ResilientClient]:
    async def async_handler(request: httpx.Request) -> httpx.Response:
        return handler(request)

    def factory(resilience: ResilienceConfig) -> ResilientClient:
        client = ResilientClient(resilience)
        client._client = httpx.AsyncClient(  # noqa: SLF001  # type: ignore[reportPrivateUsage]
            base_url=resilience.base_url or "",
            transport=httpx.MockTransport(async_handler),
        )
        return client

    return factory


def _make_client(
    handler: Callable[[httpx.Request], httpx.Response],
    *,
    is_pro: bool = False,
) -> DeepLClient:
    config = DeepLConfig(
        api_key="deepl-key",
        is_pro=is_pro,
        resilience=build_deepl_resilience(is_pro=is_pro),
    )
    return DeepLClient(config=config, client_factory=_make_client_factory(handler))


def _translate(client: DeepLClient, text: str, context: str | None = None) -> str:
    async def scenario() -> str:
        async with client:
            return await client.translate(text, "DE", context)

    return asyncio.run(scenario())


def test_translate_lowercases_text_and_sends_context() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"translations": [{"text": "Bambus"}]})

    result = _translate(_make_client(handler), "Bamboo", "A tall plant.")

    assert result == "Bambus"
    assert captured["url"] == "https://api-free.deepl.com/v2/translate"
    assert captured["auth"] == "DeepL-Auth-Key deepl-key"
    assert captured["body"] == {
        "text": ["bamboo"],
        "target_lang": "DE",
        "source_lang": "EN",
        "context": "A tall plant.",
    }


def test_translate_omits_missing_context_and_uses_pro_endpoint() -> None:
    captured: dict[str, object] = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"translations": [{"text": "Boden"}]})

    _translate(_make_client(handler, is_pro=True), "Ground")

    assert captured["url"] == f"{DEEPL_PRO_BASE_URL}translate"
    assert "context" not in captured["body"]  # type: ignore[operator]


@pytest.mark.parametrize("text", ["", "   "])
def test_translate_rejects_empty_text(text: str) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError(f"unexpected request {request.url}")

    with pytest.raises(ValueError, match="empty"):
        _translate(_make_client(handler), text)


def test_blank_api_key_is_rejected() -> None:
    config = DeepLConfig(
        api_key="  ", is_pro=False, resilience=build_deepl_resilience(is_pro=False)
    )

    with pytest.raises(ValueError, match="API key"):
        DeepLClient(config=config)


def test_empty_translation_list_is_an_error() -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"translations": []})

    with pytest.raises(RemoteServiceError, match="no translation"):
        _translate(_make_client(handler), "Ground")


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>gateway</html>"),
        httpx.Response(200, json={"translations": [{"detected_source_language": "EN"}]}),
    ],
)
def test_unparsable_response_becomes_remote_service_error(response: httpx.Response) -> None:
    with pytest.raises(RemoteServiceError, match="Unexpected DeepL response"):
        _translate(_make_client(lambda _: response), "Ground")


def test_decoding_failure_becomes_remote_service_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.DecodingError("broken gzip stream", request=request)

    with pytest.raises(RemoteServiceError, match="broken gzip stream"):
        _translate(_make_client(handler), "Ground")


@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (403, UnauthorizedError),
        (429, RateLimitedError),
        (456, QuotaExceededError),
        (500, RemoteServiceError),
    ],
)
def test_error_statuses_map_to_typed_errors(status: int, error_type: type[Exception]) -> None:
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(status, json={"message": "denied"})

    with pytest.raises(error_type, match="denied"):
        _translate(_make_client(handler), "Ground")


def test_fetch_usage_reports_remaining_characters() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/v2/usage"
        return httpx.Response(200, json={"character_count": 1200, "character_limit": 500000})

    async def scenario() -> UsageResponse:
        async with _make_client(handler) as client:
            return await client.fetch_usage()

    usage = asyncio.run(scenario())

    assert usage.character_count == 1200
    assert usage.remaining == 498800
