"""Tests for the persisted client preferences."""

from __future__ import annotations

import json

import pytest

from backend.app.domain.dashboard import ClientPreferences, SettingsStore
from backend.app.domain.errors import StorageError

pytestmark = [pytest.mark.dashboard]


def test_missing_file_yields_defaults(tmp_path):
    store = SettingsStore(tmp_path / "settings.json")

    assert store.load() == ClientPreferences(locale="fr", api_key=None)


def test_default_locale_is_configurable(tmp_path):
    store = SettingsStore(tmp_path / "settings.json", default_locale="en")

    assert store.load().locale == "en"


def test_save_then_load_round_trips(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    store = SettingsStore(path)

    store.save(ClientPreferences(locale="en").with_api_key(" key-123 "))

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "lumina_lang": "en",
        "lumina_api_key": "key-123",
    }
    assert SettingsStore(path).load() == ClientPreferences(locale="en", api_key="key-123")


@pytest.mark.parametrize(
    "content",
    ["not json", "[]", json.dumps({"lumina_lang": "de", "lumina_api_key": 42})],
)
def test_unusable_contents_fall_back_to_defaults(tmp_path, content):
    path = tmp_path / "settings.json"
    path.write_text(content, encoding="utf-8")

    assert SettingsStore(path).load() == ClientPreferences()


def test_write_failure_raises_storage_error(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    store = SettingsStore(blocker / "settings.json")

    with pytest.raises(StorageError) as excinfo:
        store.save(ClientPreferences(locale="en"))

    assert excinfo.value.code == "settings_write_failed"
