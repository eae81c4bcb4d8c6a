from __future__ import annotations

from typing import Any, cast

from doitsukani.adapters.http_resilience import (
    RetryPolicy,
    _ShouldCacheResponseFilter,  # type: ignore[reportPrivateUsage]
    build_retry,
)
from doitsukani.adapters.wanikani import should_cache_payload


def test_build_retry_keeps_rate_limits_out_of_transport_retries() -> None:
    retry = build_retry(RetryPolicy())

    assert retry.total == 3
    assert 429 not in retry.status_forcelist
    assert 503 in retry.status_forcelist


def test_cache_filter_delegates_to_json_predicate() -> None:
    response_filter = _ShouldCacheResponseFilter(should_cache_payload)
    item = cast(Any, None)
    subjects = (
        b'{"object": "collection", "data": [{"object": "radical", "id": 1, "data": {}}]}'
    )
    materials = b'{"object": "collection", "data": [{"object": "study_material", "id": 1}]}'

    assert response_filter.needs_body()
    assert response_filter.apply(item, subjects) is True
    assert response_filter.apply(item, materials) is False
    assert response_filter.apply(item, b"not json") is False
    assert response_filter.apply(item, None) is False
