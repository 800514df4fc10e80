"""Tests for settings persistence and default merging."""

import yaml

import config
from core.models import SourceConfig
from core.settings_store import (
    MemorySettingsStore,
    YamlSettingsStore,
    load_settings,
    merge_settings,
    save_settings,
)


def test_merge_fills_in_defaults():
    merged = merge_settings({"mode": "interval", "bogus": 1})
    assert merged["mode"] == "interval"
    assert "bogus" not in merged
    assert merged["time_rules"] == config.DEFAULT_TIME_RULES


def test_merge_does_not_alias_defaults():
    merged = merge_settings({})
    merged["backgrounds"].clear()
    assert config.DEFAULT_SETTINGS["backgrounds"]


def test_load_defaults_from_empty_store():
    settings = load_settings(MemorySettingsStore())
    assert settings.mode == "time-based"
    assert len(settings.time_rules) == 7
    assert settings.time_rules[-1].start_time == "22:00"
    assert settings.find_background("blue-purple-gradient").type == "gradient"
    assert settings.wallpaper_sources[0].type == "wallhaven"
    assert not settings.wallpaper_sources[0].enabled


def test_null_lists_are_treated_as_empty():
    settings = load_settings(MemorySettingsStore({"backgrounds": None, "wallpaper_sources": None}))
    assert settings.backgrounds == []
    assert settings.wallpaper_sources == []


def test_null_source_mappings_load_as_empty():
    settings = load_settings(MemorySettingsStore({"wallpaper_sources": [
        {"id": "wh", "type": "wallhaven", "params": None, "headers": None},
    ]}))
    source = settings.wallpaper_sources[0]
    assert source.params == {}
    assert source.headers == {}
    assert source.endpoints == {}


def test_malformed_entries_are_skipped():
    settings = load_settings(MemorySettingsStore({
        "time_rules": [
            {"id": "r1", "name": "Half", "start_time": "08:00"},
            {"id": "r2", "name": "Ok", "start_time": "08:00", "end_time": "09:00",
             "background_id": "pink"},
        ],
        "backgrounds": ["not-a-mapping", {"id": "pink", "name": "Pink", "type": "color", "value": "#f0f"}],
        "wallpaper_sources": [{"id": "no-type"}, {"id": "wh", "type": "wallhaven"}],
    }))
    assert [r.id for r in settings.time_rules] == ["r2"]
    assert [b.id for b in settings.backgrounds] == ["pink"]
    assert [s.id for s in settings.wallpaper_sources] == ["wh"]


def test_yaml_round_trip(tmp_path):
    path = str(tmp_path / "backdrop.yaml")
    store = YamlSettingsStore(path)
    settings = load_settings(store)
    settings.mode = "manual"
    settings.current_index = 3
    settings.wallpaper_sources.append(SourceConfig(type="custom", id="c1", base_url="https://x"))
    save_settings(store, settings)

    with open(path) as f:
        raw = yaml.safe_load(f)
    assert raw["mode"] == "manual"
    assert raw["wallpaper_sources"][-1]["id"] == "c1"
    # Backgrounds drop unset style overrides
    assert "blur_depth" not in raw["backgrounds"][0]

    reloaded = load_settings(store)
    assert reloaded.mode == "manual"
    assert reloaded.current_index == 3
    assert reloaded.wallpaper_sources[-1].base_url == "https://x"


def test_yaml_store_missing_file(tmp_path):
    assert YamlSettingsStore(str(tmp_path / "nope.yaml")).load() == {}


def test_yaml_store_invalid_content(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("mode: [unclosed\n")
    assert YamlSettingsStore(str(path)).load() == {}
    path.write_text("- just\n- a list\n")
    assert YamlSettingsStore(str(path)).load() == {}
    path.write_text("")
    assert YamlSettingsStore(str(path)).load() == {}


def test_memory_store_counts_saves():
    store = MemorySettingsStore()
    save_settings(store, load_settings(store))
    save_settings(store, load_settings(store))
    assert store.saves == 2
    assert store.load()["mode"] == "time-based"
