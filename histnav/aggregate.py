"""
Aggregator: merges raw Commands from every source into one deduplicated,
filtered, recent-first list.

Processing order is fixed:

1. concatenate all sources
2. drop invalid records (empty, binary, implausible timestamps, bare numbers)
3. sort by recency, newest first
4. deduplicate by trimmed text, counting occurrences
5. drop records matching an exclusion pattern
6. sort by ordering key, newest first

Step 4 keeps, for each text, the fields of its most recent occurrence under
`Command.recency`, which is a total order. The result is therefore the same
for any permutation of the input.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, replace
from datetime import timedelta
from itertools import chain
from typing import Iterable

from histnav.command import Command
from histnav.errors import ExcludePatternError

logger = logging.getLogger(__name__)

DEFAULT_MAX_AGE = timedelta(days=5 * 365)
DEFAULT_FUTURE_GRACE = timedelta(hours=1)

# NUL, a raw 0xFF decoded as latin-1, and a raw 0xFF kept by surrogateescape
BINARY_MARKERS = ("\x00", "\xff", "\udcff")
JUST_NUMBER_RE = re.compile(r"[0-9]+")


@dataclass
class AggregateStats:
    """Counters from the most recent `Aggregator.aggregate` call."""

    raw: int = 0
    invalid: int = 0
    merged: int = 0
    excluded: int = 0
    kept: int = 0


def compile_exclude_patterns(patterns: Iterable[str]) -> tuple[list[re.Pattern[str]], list[tuple[str, str]]]:
    """→ Compile each pattern on its own; returns (compiled, [(bad_pattern, reason), ...])"""
    compiled: list[re.Pattern[str]] = []
    errors: list[tuple[str, str]] = []
    for pattern in patterns:
        try:
            compiled.append(re.compile(pattern))
        except re.error as e:
            errors.append((pattern, str(e)))
    return compiled, errors


class Aggregator:
    """Deduplicates and filters raw Commands.

    Arguments:
        exclude_patterns - regular expressions; see `set_exclude_patterns`
        max_age - records with a recorded timestamp older than this are
            treated as parse artifacts; None disables the check
        future_grace - how far past "now" a recorded timestamp may be
        now - fixed reference time in epoch seconds; defaults to the clock at
            each `aggregate` call
    """

    def __init__(
        self,
        exclude_patterns: Iterable[str] = (),
        *,
        max_age: timedelta | None = DEFAULT_MAX_AGE,
        future_grace: timedelta = DEFAULT_FUTURE_GRACE,
        now: float | None = None,
    ):
        self.max_age = max_age
        self.future_grace = future_grace
        self.now = now
        self.exclude_patterns: list[re.Pattern[str]] = []
        self.last_stats = AggregateStats()
        if exclude_patterns:
            self.set_exclude_patterns(exclude_patterns)

    def set_exclude_patterns(self, patterns: Iterable[str]) -> None:
        """Replace the exclusion rules.

        Every pattern that compiles is installed even when others do not; the
        failures are then raised together as ExcludePatternError.
        """
        compiled, errors = compile_exclude_patterns(patterns)
        self.exclude_patterns = compiled
        if errors:
            raise ExcludePatternError(errors)

    # ------------------------------------------------------------------------
    # Filters
    # ------------------------------------------------------------------------

    def is_excluded(self, text: str) -> bool:
        return any(pattern.search(text) for pattern in self.exclude_patterns)

    def is_valid(self, command: Command, now: float) -> bool:
        """→ False for records that are almost certainly parse artifacts"""
        text = command.text.strip()
        if not text:
            return False
        if any(marker in text for marker in BINARY_MARKERS):
            return False
        if JUST_NUMBER_RE.fullmatch(text):
            return False
        if not command.synthetic:
            if command.ordering_key > now + self.future_grace.total_seconds():
                return False
            if self.max_age is not None and command.ordering_key < now - self.max_age.total_seconds():
                return False
        return True

    # ------------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------------

    @staticmethod
    def _absorb(representative: Command, occurrence: Command) -> None:
        """→ Fold one more occurrence of the same text into its representative"""
        representative.count += occurrence.count
        if occurrence.recency() > representative.recency():
            representative.ordering_key = occurrence.ordering_key
            representative.synthetic = occurrence.synthetic
            representative.exit_code = occurrence.exit_code
            representative.has_exit_code = occurrence.has_exit_code
            representative.directory = occurrence.directory

    def aggregate(self, *sources: Iterable[Command]) -> list[Command]:
        """Merge one or more raw Command streams into the final list.

        Input Commands are never modified; the returned ones are new objects.
        """
        now = time.time() if self.now is None else self.now
        stats = AggregateStats()

        candidates = list(chain.from_iterable(sources))
        stats.raw = len(candidates)

        valid = [c for c in candidates if self.is_valid(c, now)]
        stats.invalid = stats.raw - len(valid)

        valid.sort(key=Command.recency, reverse=True)

        representatives: dict[str, Command] = {}
        for command in valid:
            text = command.text.strip()
            existing = representatives.get(text)
            if existing is None:
                representatives[text] = replace(command, text=text)
            else:
                self._absorb(existing, command)
                stats.merged += 1

        result = [c for c in representatives.values() if not self.is_excluded(c.text)]
        stats.excluded = len(representatives) - len(result)

        result.sort(key=lambda c: (-c.ordering_key, c.text))
        stats.kept = len(result)

        self.last_stats = stats
        logger.debug(
            "Aggregated %d raw record(s): %d invalid, %d duplicate(s) merged, %d excluded, %d kept",
            stats.raw,
            stats.invalid,
            stats.merged,
            stats.excluded,
            stats.kept,
        )
        return result
