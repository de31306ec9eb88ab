# pylint: disable=missing-module-docstring,missing-function-docstring
import json
from pathlib import Path

import pytest

from language.catalog import LANGUAGES, default_language, menu_page, next_language, resolve_language
from language.preferences import PreferenceStore, is_valid_client_id
from observability import logger

from spec import LANGUAGE_PREFERENCE_KEY


@pytest.fixture
def captured_logs(monkeypatch: pytest.MonkeyPatch) -> list[dict[str, object]]:
    lines: list[dict[str, object]] = []
    monkeypatch.setattr(logger, "_print", lambda line: lines.append(json.loads(line)))
    return lines


# ---------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------

def test_default_language_is_english() -> None:
    assert default_language().name == "English"
    assert default_language().code == "en-IN"


def test_resolve_language_by_name_or_code() -> None:
    assert resolve_language("hindi") == resolve_language("hi-IN")
    assert resolve_language("  Tamil ").code == "ta-IN"  # type: ignore[union-attr]
    assert resolve_language("Klingon") is None


def test_next_language_wraps_around() -> None:
    assert next_language(LANGUAGES[0]) == LANGUAGES[1]
    assert next_language(LANGUAGES[-1]) == LANGUAGES[0]


def test_menu_pages_hold_five_and_wrap() -> None:
    first = menu_page(0, 5)
    assert len(first) == 5
    assert first[0].name == "English"
    assert menu_page(2, 5) == LANGUAGES[10:]
    assert menu_page(3, 5) == first


# ---------------------------------------------------------------------
# Preference store
# ---------------------------------------------------------------------

def test_missing_file_yields_default(tmp_path: Path) -> None:
    store = PreferenceStore(tmp_path / "prefs.json", client_id="alice")
    assert store.load_language() == default_language()


def test_save_then_load(tmp_path: Path, captured_logs: list[dict[str, object]]) -> None:
    path = tmp_path / "nested" / "prefs.json"
    store = PreferenceStore(path, client_id="alice")

    store.save_language(resolve_language("Marathi"))  # type: ignore[arg-type]

    assert json.loads(path.read_text(encoding="utf-8")) == {"alice": {LANGUAGE_PREFERENCE_KEY: "Marathi"}}
    assert PreferenceStore(path, client_id="alice").load_language().code == "mr-IN"
    assert captured_logs[-1]["event_type"] == "PREFERENCE_SAVED"
    # No temp files left behind
    assert [p.name for p in path.parent.iterdir()] == ["prefs.json"]


def test_corrupt_file_yields_default(tmp_path: Path, captured_logs: list[dict[str, object]]) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")

    assert PreferenceStore(path, client_id="alice").load_language() == default_language()
    assert captured_logs[-1]["event_type"] == "PREFERENCE_READ_ERROR"


def test_unknown_language_yields_default(tmp_path: Path, captured_logs: list[dict[str, object]]) -> None:
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"alice": {LANGUAGE_PREFERENCE_KEY: "Klingon"}}), encoding="utf-8")

    assert PreferenceStore(path, client_id="alice").load_language() == default_language()
    assert captured_logs[-1]["event_type"] == "PREFERENCE_UNKNOWN_LANGUAGE"


def test_save_keeps_unrelated_keys(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text(json.dumps({"bob": {LANGUAGE_PREFERENCE_KEY: "Tamil"}, "alice": {"other": 1}}), encoding="utf-8")

    PreferenceStore(path, client_id="alice").save_language(default_language())

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "bob": {LANGUAGE_PREFERENCE_KEY: "Tamil"},
        "alice": {"other": 1, LANGUAGE_PREFERENCE_KEY: "English"},
    }


def test_clients_do_not_see_each_other(tmp_path: Path) -> None:
    path = tmp_path / "prefs.json"
    PreferenceStore(path, client_id="alice").save_language(resolve_language("Tamil"))  # type: ignore[arg-type]

    assert PreferenceStore(path, client_id="bob").load_language() == default_language()
    assert PreferenceStore(path, client_id="alice").load_language().name == "Tamil"


def test_client_ids_must_be_short_and_url_safe(tmp_path: Path) -> None:
    assert is_valid_client_id("a1b2-C3_d4")
    for bad in (None, "", "../x", "has space", "x" * 65):
        assert not is_valid_client_id(bad)
    with pytest.raises(ValueError):
        PreferenceStore(tmp_path / "prefs.json", client_id="../x")
