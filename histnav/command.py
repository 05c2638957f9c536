"""
The normalized command record shared by every stage of the pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from functools import cached_property


class Dialect(Enum):
    """History-file line syntax."""

    PLAIN = "plain"  # bash: the whole line is the command
    EXTENDED = "extended"  # zsh EXTENDED_HISTORY: ": <ts>:<elapsed>[:<exit>];<command>"


@dataclass
class Command:
    """A single historical invocation, or a deduplicated group of them."""

    text: str
    ordering_key: float
    directory: str = ""
    count: int = 1
    exit_code: int = 0
    has_exit_code: bool = False
    # True when ordering_key comes from line position, not from the file
    synthetic: bool = False

    @property
    def timestamp(self) -> datetime | None:
        """→ Wall-clock time of the (most recent) invocation, if the source recorded one"""
        if self.synthetic:
            return None
        return datetime.fromtimestamp(self.ordering_key)

    @property
    def failed(self) -> bool:
        return self.has_exit_code and self.exit_code != 0

    def recency(self) -> tuple[float, bool, bool, int, str]:
        """Total order used to pick the representative among equal texts.

        Larger is more recent. Beyond the ordering key it prefers real
        timestamps over synthetic ones and recorded exit codes over missing
        ones, so the choice never depends on input order.
        """
        return (
            self.ordering_key,
            not self.synthetic,
            self.has_exit_code,
            self.exit_code,
            self.directory,
        )


@dataclass(frozen=True)
class TimestampWindow:
    """Inclusive calendar-year range (UTC) that a recorded timestamp must fall in."""

    min_year: int = 2000
    max_year: int = 2099

    def __post_init__(self):
        if not 1 <= self.min_year <= 9999:
            raise ValueError(f"min_year must be between 1 and 9999, got {self.min_year}")
        if self.max_year < self.min_year:
            raise ValueError(f"max_year ({self.max_year}) is before min_year ({self.min_year})")

    @cached_property
    def earliest(self) -> float:
        return datetime(self.min_year, 1, 1, tzinfo=timezone.utc).timestamp()

    @cached_property
    def latest(self) -> float:
        """→ Exclusive upper bound: the first second of the year after max_year"""
        if self.max_year >= 9999:
            return float("inf")
        return datetime(self.max_year + 1, 1, 1, tzinfo=timezone.utc).timestamp()

    def contains(self, epoch_seconds: float) -> bool:
        return self.earliest <= epoch_seconds < self.latest


DEFAULT_WINDOW = TimestampWindow()
