"""
YAML configuration.

The file lives at ~/.config/history-nav/config.yaml and is created with the
defaults below on first run. Every key is optional; unknown keys are ignored.

    sources:
      - ~/.zsh_history
      - ~/.bash_history
    exclude_patterns: ["password", "^exit$"]
    templates_path: ~/.config/history-nav/templates.yaml
    ui: {max_items: 1000, theme: dark, show_timestamps: true, show_frequency: true}
    performance: {max_history_lines: 10000}
    timestamps: {min_year: 2000, max_year: 2099, max_age_days: 1825, future_grace_seconds: 3600}
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field, fields
from datetime import timedelta
from pathlib import Path
from typing import Any, get_args, get_type_hints

import yaml

from histnav.aggregate import Aggregator
from histnav.command import TimestampWindow
from histnav.errors import ConfigError
from histnav.reader import HistoryReader

logger = logging.getLogger(__name__)

CONFIG_DIR = Path("~/.config/history-nav")
CONFIG_FILENAME = "config.yaml"

DEFAULT_SOURCES = ["~/.zsh_history", "~/.bash_history"]

DEFAULT_EXCLUDE_PATTERNS = [
    r"^sudo su",  # only "sudo su", not every sudo
    r"password",
    r"token",
    r"secret",
    r"key.*=",  # KEY=... style environment assignments
    r"^history",
    r"^exit$",
    r"^clear$",
    r"^pwd$",
    r"^\.$",
    r"^\.\.*$",
    r"^\d+$",
    r"^\s*$",
    r"^h$",
]


def default_config_path() -> Path:
    return (CONFIG_DIR / CONFIG_FILENAME).expanduser()


# ============================================================================
# DATA STRUCTURES
# ============================================================================


@dataclass
class UIConfig:
    max_items: int = 1000
    theme: str = "dark"
    show_timestamps: bool = True
    show_frequency: bool = True


@dataclass
class Performance:
    max_history_lines: int = 10000


@dataclass
class TimestampConfig:
    """Sanity bounds for recorded timestamps."""

    min_year: int = 2000
    max_year: int = 2099
    # None disables the "too old" check
    max_age_days: int | None = 1825
    future_grace_seconds: int = 3600

    def __post_init__(self):
        try:
            TimestampWindow(self.min_year, self.max_year)
        except ValueError as e:
            raise ConfigError(f"'timestamps': {e}") from e
        if self.max_age_days is not None and self.max_age_days < 0:
            raise ConfigError("'timestamps.max_age_days' must not be negative")
        if self.future_grace_seconds < 0:
            raise ConfigError("'timestamps.future_grace_seconds' must not be negative")

    @property
    def window(self) -> TimestampWindow:
        return TimestampWindow(self.min_year, self.max_year)

    @property
    def max_age(self) -> timedelta | None:
        if self.max_age_days is None:
            return None
        return timedelta(days=self.max_age_days)

    @property
    def future_grace(self) -> timedelta:
        return timedelta(seconds=self.future_grace_seconds)


def _matches(value: Any, hint: Any) -> bool:
    """→ Whether a YAML value fits a field annotation such as `int` or `int | None`"""
    allowed = get_args(hint) or (hint,)
    # YAML booleans are ints to isinstance
    if isinstance(value, bool) and bool not in allowed:
        return False
    return isinstance(value, allowed)


def _type_name(hint: Any) -> str:
    return " or ".join("null" if t is type(None) else t.__name__ for t in get_args(hint) or (hint,))


def _section(cls: type, data: Any, name: str):
    """→ Build a section dataclass from a mapping, ignoring unknown keys"""
    if data is None:
        return cls()
    if not isinstance(data, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(data).__name__}")
    hints = get_type_hints(cls)
    values = {}
    for f in fields(cls):
        if f.name not in data:
            continue
        value = data[f.name]
        if not _matches(value, hints[f.name]):
            raise ConfigError(
                f"'{name}.{f.name}' must be {_type_name(hints[f.name])}, got {type(value).__name__}"
            )
        values[f.name] = value
    return cls(**values)


def _string_list(data: Any, name: str, default: list[str]) -> list[str]:
    if data is None:
        return list(default)
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise ConfigError(f"'{name}' must be a list of strings")
    return list(data)


@dataclass
class Config:
    """Application configuration."""

    sources: list[str] = field(default_factory=lambda: list(DEFAULT_SOURCES))
    exclude_patterns: list[str] = field(default_factory=lambda: list(DEFAULT_EXCLUDE_PATTERNS))
    ui: UIConfig = field(default_factory=UIConfig)
    templates_path: str = str(CONFIG_DIR / "templates.yaml")
    performance: Performance = field(default_factory=Performance)
    timestamps: TimestampConfig = field(default_factory=TimestampConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        defaults = cls()
        templates_path = data.get("templates_path", defaults.templates_path)
        if not isinstance(templates_path, str):
            raise ConfigError("'templates_path' must be a string")
        config = cls(
            sources=_string_list(data.get("sources"), "sources", defaults.sources),
            exclude_patterns=_string_list(
                data.get("exclude_patterns"), "exclude_patterns", defaults.exclude_patterns
            ),
            ui=_section(UIConfig, data.get("ui"), "ui"),
            templates_path=templates_path,
            performance=_section(Performance, data.get("performance"), "performance"),
            timestamps=_section(TimestampConfig, data.get("timestamps"), "timestamps"),
        )
        config.expand_paths()
        return config

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def expand_paths(self) -> None:
        """→ Expand a leading ~ in sources and templates_path"""
        self.sources = [os.path.expanduser(s) for s in self.sources]
        self.templates_path = os.path.expanduser(self.templates_path)

    def save(self, path: Path | None = None) -> Path:
        path = path or default_config_path()
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            with path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(self.to_dict(), f, sort_keys=False)
        except OSError as e:
            raise ConfigError(f"Could not write config file {path}: {e}") from e
        return path

    def build_reader(self) -> HistoryReader:
        """→ A HistoryReader wired with this configuration (exclude patterns not yet applied)"""
        aggregator = Aggregator(
            max_age=self.timestamps.max_age,
            future_grace=self.timestamps.future_grace,
        )
        return HistoryReader(
            self.sources,
            self.performance.max_history_lines,
            window=self.timestamps.window,
            aggregator=aggregator,
        )


# ============================================================================
# LOADING
# ============================================================================


def load_config(path: Path | None = None) -> Config:
    """Load the configuration, writing the defaults first if the file is missing.

    A default file that cannot be written is not fatal: the defaults are used
    as-is. A file that exists but cannot be read or parsed raises ConfigError.
    """
    path = path or default_config_path()

    if not path.exists():
        config = Config()
        try:
            config.save(path)
            logger.info("Wrote default configuration to %s", path)
        except ConfigError as e:
            logger.warning("%s; continuing with defaults", e)
        config.expand_paths()
        return config

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Could not read config file {path}: {e}") from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping, got {type(data).__name__}")

    return Config.from_dict(data)
