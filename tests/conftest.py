from __future__ import annotations

from pathlib import Path  # noqa: TC003

import pytest

from tests.helpers.synonyms import FakeRecordService, FakeTranslator, make_record


@pytest.fixture(autouse=True)
def _isolated_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # Keep the sqlite HTTP cache out of the user's cache directory.
    monkeypatch.setenv("DOITSUKANI_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("DOITSUKANI_SYNONYM_MODE", raising=False)


@pytest.fixture
def record_service() -> FakeRecordService:
    return FakeRecordService(
        [
            make_record(1, "Erde", record_id=1001),
            make_record(2, record_id=1002),
            make_record(5, "x", "y", record_id=1000),
        ]
    )


@pytest.fixture
def translator() -> FakeTranslator:
    return FakeTranslator({"Ground": "Boden", "Earth": "erde", "Stick": "Stock"})
