import json

from risa.settings_store import (
    KEY_API_KEY,
    KEY_ENABLED,
    KEY_ONBOARDING_DONE,
    JsonSettingsStore,
    SettingsChange,
)


def test_defaults_when_empty(tmp_path):
    store = JsonSettingsStore(str(tmp_path / "settings.json"))
    assert store.get_bool(KEY_ONBOARDING_DONE) is False
    assert store.get_bool(KEY_ENABLED, default=True) is True
    assert store.get_string(KEY_API_KEY) == ""


def test_values_persist_across_instances(tmp_path):
    path = tmp_path / "nested" / "settings.json"
    store = JsonSettingsStore(str(path))
    store.put_bool(KEY_ONBOARDING_DONE, True)
    store.put_string(KEY_API_KEY, "abc")

    reopened = JsonSettingsStore(str(path))
    assert reopened.get_bool(KEY_ONBOARDING_DONE) is True
    assert reopened.get_string(KEY_API_KEY) == "abc"
    assert json.loads(path.read_text(encoding="utf-8"))[KEY_ONBOARDING_DONE] is True


def test_subscribers_notified_only_on_change():
    store = JsonSettingsStore()
    changes = []
    store.subscribe(changes.append)

    store.put_bool(KEY_ENABLED, True)
    store.put_bool(KEY_ENABLED, True)
    store.put_bool(KEY_ENABLED, False)

    assert changes == [
        SettingsChange(KEY_ENABLED, True),
        SettingsChange(KEY_ENABLED, False),
    ]


def test_corrupt_file_starts_empty(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    store = JsonSettingsStore(str(path))
    assert store.get_bool(KEY_ENABLED) is False

    store.put_bool(KEY_ENABLED, True)
    assert JsonSettingsStore(str(path)).get_bool(KEY_ENABLED) is True


def test_memory_only_store_writes_nothing(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    store = JsonSettingsStore()
    store.put_string(KEY_API_KEY, "k")
    assert store.get_string(KEY_API_KEY) == "k"
    assert list(tmp_path.iterdir()) == []
