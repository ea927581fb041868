import json
import logging

from autosave_guard import config
from autosave_guard.preferences import PreferenceStore


def test_missing_file_uses_default_interval(tmp_path):
    store = PreferenceStore(tmp_path / "preferences.json")

    assert store.autosave_interval() == config.DEFAULT_AUTOSAVE_INTERVAL_MINUTES


def test_reads_interval_from_file(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"autosave_interval": 0, "theme": "dark"}), encoding="utf-8")

    assert PreferenceStore(path).autosave_interval() == 0


def test_malformed_file_falls_back_to_defaults(tmp_path, caplog):
    path = tmp_path / "preferences.json"
    path.write_text("{not json", encoding="utf-8")

    caplog.set_level(logging.WARNING)
    store = PreferenceStore(path)

    assert store.autosave_interval() == config.DEFAULT_AUTOSAVE_INTERVAL_MINUTES
    assert any("Could not read preferences" in r.message for r in caplog.records)


def test_invalid_interval_value_is_ignored(tmp_path):
    path = tmp_path / "preferences.json"
    path.write_text(json.dumps({"autosave_interval": "often"}), encoding="utf-8")

    assert PreferenceStore(path).autosave_interval() == config.DEFAULT_AUTOSAVE_INTERVAL_MINUTES


def test_set_interval_persists(tmp_path):
    path = tmp_path / "sub" / "preferences.json"
    store = PreferenceStore(path)

    store.set_autosave_interval(12)

    assert PreferenceStore(path).autosave_interval() == 12
