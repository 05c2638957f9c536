"""
HistoryReader: ingests every configured source and aggregates the result.
`load_history` is the refresh operation used at startup and by the app.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable

from histnav.aggregate import Aggregator
from histnav.command import DEFAULT_WINDOW, Command, TimestampWindow
from histnav.ingest import DEFAULT_MAX_LINES, ingest_file
from histnav.storage import Storage

logger = logging.getLogger(__name__)


class HistoryReader:
    """Reads command history from a list of source files."""

    def __init__(
        self,
        sources: Iterable[str | Path],
        max_lines: int = DEFAULT_MAX_LINES,
        *,
        window: TimestampWindow = DEFAULT_WINDOW,
        aggregator: Aggregator | None = None,
    ):
        self.sources = [Path(s) for s in sources]
        self.max_lines = max_lines
        self.window = window
        self.aggregator = aggregator or Aggregator()

    def set_max_lines(self, max_lines: int) -> None:
        self.max_lines = max_lines

    def set_exclude_patterns(self, patterns: Iterable[str]) -> None:
        """→ Raises ExcludePatternError for bad patterns; the good ones still apply"""
        self.aggregator.set_exclude_patterns(patterns)

    def read_source(self, source: Path, now: float) -> list[Command]:
        return ingest_file(source, self.max_lines, now=now, window=self.window)

    def read_history(self) -> list[Command]:
        """Read all sources and return the aggregated, recent-first Commands.

        A source that fails is skipped; if every source fails the result is
        simply empty.
        """
        now = time.time()
        streams: list[list[Command]] = []
        for source in self.sources:
            try:
                streams.append(self.read_source(source, now))
            except (OSError, ValueError) as e:
                logger.warning("Skipping history source %s: %s", source, e)
        return self.aggregator.aggregate(*streams)


def load_history(reader: HistoryReader, storage: Storage) -> list[Command]:
    """→ Re-read every source and replace the storage contents in one swap"""
    commands = reader.read_history()
    storage.store(commands)
    logger.info("Loaded %d command(s) from %d source(s)", len(commands), len(reader.sources))
    return commands
