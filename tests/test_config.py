from __future__ import annotations

import re
from datetime import timedelta

import pytest
import yaml

from histnav.config import (
    DEFAULT_EXCLUDE_PATTERNS,
    Config,
    TimestampConfig,
    default_config_path,
    load_config,
)
from histnav.errors import ConfigError


def write_config(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_missing_config_is_created_with_defaults(isolated_home):
    config = load_config()

    path = default_config_path()
    assert path == isolated_home / ".config" / "history-nav" / "config.yaml"
    assert path.exists()
    saved = yaml.safe_load(path.read_text(encoding="utf-8"))
    assert saved["exclude_patterns"] == DEFAULT_EXCLUDE_PATTERNS
    assert saved["ui"]["max_items"] == 1000
    assert config.sources == [str(isolated_home / ".zsh_history"), str(isolated_home / ".bash_history")]


def test_unwritable_default_location_falls_back_to_defaults(tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("", encoding="utf-8")
    config = load_config(blocker / "config.yaml")
    assert config.ui.max_items == 1000
    assert config.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS


def test_partial_config_keeps_other_defaults(tmp_path):
    path = write_config(tmp_path, "ui:\n  theme: light\nperformance:\n  max_history_lines: 50\n")
    config = load_config(path)
    assert config.ui.theme == "light"
    assert config.ui.max_items == 1000
    assert config.performance.max_history_lines == 50
    assert config.exclude_patterns == DEFAULT_EXCLUDE_PATTERNS


def test_unknown_keys_are_ignored(tmp_path):
    path = write_config(tmp_path, "colour: blue\nui:\n  sparkles: true\n")
    assert load_config(path).ui == Config().ui


def test_empty_file_means_defaults(tmp_path):
    assert load_config(write_config(tmp_path, "")).ui.max_items == 1000


def test_empty_exclude_list_disables_filtering(tmp_path):
    assert load_config(write_config(tmp_path, "exclude_patterns: []\n")).exclude_patterns == []


@pytest.mark.parametrize(
    "text",
    [
        "sources: [unclosed\n",
        "- just\n- a list\n",
        "sources: ~/.zsh_history\n",
        "exclude_patterns: [1, 2]\n",
        "ui: dark\n",
        "templates_path: [a, b]\n",
    ],
)
def test_invalid_config_raises(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write_config(tmp_path, text))


def test_paths_are_expanded(tmp_path, isolated_home):
    path = write_config(tmp_path, "sources: [~/h1, /abs/h2]\ntemplates_path: ~/t.yaml\n")
    config = load_config(path)
    assert config.sources == [str(isolated_home / "h1"), "/abs/h2"]
    assert config.templates_path == str(isolated_home / "t.yaml")


def test_timestamp_section():
    ts = TimestampConfig(min_year=2010, max_year=2030, max_age_days=7, future_grace_seconds=60)
    assert (ts.window.min_year, ts.window.max_year) == (2010, 2030)
    assert ts.max_age == timedelta(days=7)
    assert ts.future_grace == timedelta(seconds=60)
    assert TimestampConfig(max_age_days=None).max_age is None


def test_save_round_trips_through_load(tmp_path):
    config = Config()
    config.ui.theme = "light"
    config.exclude_patterns = ["^ls$"]
    path = config.save(tmp_path / "nested" / "config.yaml")
    loaded = load_config(path)
    assert loaded.ui.theme == "light"
    assert loaded.exclude_patterns == ["^ls$"]


def test_default_patterns_compile():
    for pattern in DEFAULT_EXCLUDE_PATTERNS:
        re.compile(pattern)


def test_default_patterns_target_noise_and_secrets():
    def excluded(text):
        return any(re.search(p, text) for p in DEFAULT_EXCLUDE_PATTERNS)

    assert excluded("export api_key=abc")
    assert excluded("sudo su -")
    assert excluded("exit")
    assert excluded("..")
    assert not excluded("sudo apt update")
    assert not excluded("git status")


def test_build_reader_uses_config(tmp_path):
    path = write_config(
        tmp_path,
        "sources: [/a, /b]\n"
        "performance: {max_history_lines: 25}\n"
        "timestamps: {min_year: 1990, max_year: 2050, max_age_days: null, future_grace_seconds: 10}\n",
    )
    reader = load_config(path).build_reader()
    assert [str(s) for s in reader.sources] == ["/a", "/b"]
    assert reader.max_lines == 25
    assert (reader.window.min_year, reader.window.max_year) == (1990, 2050)
    assert reader.aggregator.max_age is None
    assert reader.aggregator.future_grace == timedelta(seconds=10)


@pytest.mark.parametrize(
    "text",
    [
        "performance: {max_history_lines: lots}\n",
        "ui: {max_items: 10.5}\n",
        "ui: {show_frequency: maybe}\n",
        "ui: {max_items: true}\n",
        "ui: {theme: 3}\n",
        "timestamps: {max_age_days: forever}\n",
    ],
)
def test_wrongly_typed_values_raise(tmp_path, text):
    with pytest.raises(ConfigError, match="must be"):
        load_config(write_config(tmp_path, text))


@pytest.mark.parametrize(
    "text",
    [
        "timestamps: {min_year: 0}\n",
        "timestamps: {min_year: 2050, max_year: 2000}\n",
        "timestamps: {max_age_days: -1}\n",
        "timestamps: {future_grace_seconds: -5}\n",
    ],
)
def test_unusable_timestamp_bounds_raise(tmp_path, text):
    with pytest.raises(ConfigError, match="timestamps"):
        load_config(write_config(tmp_path, text))


def test_null_max_age_is_allowed(tmp_path):
    assert load_config(write_config(tmp_path, "timestamps: {max_age_days: null}\n")).timestamps.max_age is None


def test_legacy_cache_key_is_ignored(tmp_path):
    path = write_config(tmp_path, "performance: {cache_enabled: false, max_history_lines: 7}\n")
    assert load_config(path).performance.max_history_lines == 7
