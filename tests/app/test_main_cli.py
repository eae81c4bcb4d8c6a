from __future__ import annotations

import json
from pathlib import Path  # noqa: TC003
from uuid import uuid4

import pytest

from doitsukani import main as main_module
from doitsukani.app import load_translations
from doitsukani.domain.types import (
    DesiredRecord,
    RunResult,
    RunState,
    SubjectId,
    SynonymMode,
    UploadStats,
)


def _result(state: RunState = RunState.COMPLETED) -> RunResult:
    return RunResult(
        session_id=uuid4(),
        state=state,
        stats=UploadStats(created=1, successful=1),
        total=1,
        processed=1,
    )


def test_sync_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_sync(**kwargs: object) -> RunResult:
        captured.update(kwargs)
        return _result()

    monkeypatch.setattr(main_module, "sync_synonyms", fake_sync)

    main_module.main(["sync"])

    assert captured == {
        "mode": None,
        "levels": None,
        "subject_types": ("radical",),
        "batch_size": None,
        "inter_batch_delay": None,
    }


def test_sync_with_flags(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_sync(**kwargs: object) -> RunResult:
        captured.update(kwargs)
        return _result()

    monkeypatch.setattr(main_module, "sync_synonyms", fake_sync)

    main_module.main(
        [
            "sync",
            "--mode",
            "delete",
            "--level",
            "3",
            "--level",
            "4",
            "--subject-type",
            "kanji",
            "--batch-size",
            "10",
            "--inter-batch-delay",
            "0.5",
        ]
    )

    assert captured["mode"] is SynonymMode.DELETE
    assert captured["levels"] == [3, 4]
    assert captured["subject_types"] == ("kanji",)
    assert captured["batch_size"] == 10
    assert captured["inter_batch_delay"] == 0.5


@pytest.mark.parametrize(
    "argv",
    [
        ["sync", "--batch-size", "0"],
        ["sync", "--inter-batch-delay", "-1"],
        ["sync", "--level", "61"],
    ],
)
def test_invalid_arguments_exit_with_usage_error(
    monkeypatch: pytest.MonkeyPatch, argv: list[str]
) -> None:
    monkeypatch.setattr(main_module, "sync_synonyms", lambda **_: _result())

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(argv)

    assert excinfo.value.code == 2


def test_fatal_error_exits_with_one(monkeypatch: pytest.MonkeyPatch) -> None:
    def fake_sync(**_: object) -> RunResult:
        raise RuntimeError("boom")

    monkeypatch.setattr(main_module, "sync_synonyms", fake_sync)

    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["sync"])

    assert excinfo.value.code == 1


def test_import_translations_passes_path(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, object] = {}

    def fake_import(path: str, **kwargs: object) -> RunResult:
        captured["path"] = path
        captured.update(kwargs)
        return _result()

    monkeypatch.setattr(main_module, "import_translations", fake_import)

    main_module.main(["import-translations", "translations.json", "--batch-size", "5"])

    assert captured == {"path": "translations.json", "batch_size": 5, "inter_batch_delay": None}


def test_load_translations_parses_subject_mapping(tmp_path: Path) -> None:
    path = tmp_path / "translations.json"
    path.write_text(json.dumps({"5": ["boden", "Erde"], "12": []}), encoding="utf-8")

    assert load_translations(path) == [
        DesiredRecord(subject_id=SubjectId(5), synonyms=("boden", "Erde")),
        DesiredRecord(subject_id=SubjectId(12), synonyms=()),
    ]


@pytest.mark.parametrize(
    "payload",
    [["not", "a", "mapping"], {"abc": ["x"]}, {"5": "boden"}],
)
def test_load_translations_rejects_malformed_files(tmp_path: Path, payload: object) -> None:
    path = tmp_path / "translations.json"
    path.write_text(json.dumps(payload), encoding="utf-8")

    with pytest.raises(ValueError):  # noqa: PT011
        load_translations(path)
