"""
Ranker / search over the aggregated Commands.

`Storage` is the interface the presentation layer talks to. `MemoryStorage`
is the only implementation: it keeps the Commands plus an inverted word index
in an immutable snapshot and replaces the whole snapshot on every `store`.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterable

from histnav.command import Command

DEFAULT_MAX_ITEMS = 1000

SHELL_PUNCTUATION = "\"'`()[]{}|&;"
SHELL_OPERATORS = frozenset({"&&", "||", ">>", "<<", "2>", "1>", "&>"})


# ============================================================================
# ORDERING HELPERS
# ============================================================================


def by_recency(commands: Iterable[Command]) -> list[Command]:
    return sorted(commands, key=lambda c: (-c.ordering_key, c.text))


def by_frequency(commands: Iterable[Command]) -> list[Command]:
    """→ Highest count first, most recent first among equal counts"""
    return sorted(commands, key=lambda c: (-c.count, -c.ordering_key, c.text))


def successful(commands: Iterable[Command]) -> list[Command]:
    """→ Commands with no recorded exit code or exit code 0"""
    return [c for c in commands if not c.failed]


def failed(commands: Iterable[Command]) -> list[Command]:
    return [c for c in commands if c.failed]


def clean_word(word: str) -> str:
    """→ Strip shell quoting/grouping characters; "" for words not worth indexing"""
    word = word.strip(SHELL_PUNCTUATION)
    for prefix in ("./", "../"):
        if word.startswith(prefix):
            word = word[len(prefix) :]
            break
    if len(word) < 2 or word in SHELL_OPERATORS:
        return ""
    return word


# ============================================================================
# INTERFACE
# ============================================================================


class Storage(ABC):
    """What the presentation layer needs from a command store."""

    @abstractmethod
    def store(self, commands: list[Command]) -> None:
        """Replace the stored commands."""
        raise NotImplementedError

    @abstractmethod
    def search(self, query: str) -> list[Command]:
        """Commands containing every whitespace-separated term of `query`."""
        raise NotImplementedError

    @abstractmethod
    def get_recent(self, limit: int = 0) -> list[Command]:
        raise NotImplementedError

    @abstractmethod
    def get_by_frequency(self) -> list[Command]:
        raise NotImplementedError

    @abstractmethod
    def get_all(self) -> list[Command]:
        raise NotImplementedError

    @abstractmethod
    def stats(self) -> dict[str, int]:
        raise NotImplementedError


# ============================================================================
# IN-MEMORY IMPLEMENTATION
# ============================================================================


@dataclass(frozen=True)
class _Snapshot:
    commands: tuple[Command, ...] = ()
    lowered: tuple[str, ...] = ()
    # word -> positions in `commands`; every key is a substring of its commands' text
    index: dict[str, frozenset[int]] = field(default_factory=dict)
    # term -> positions_for(term); the only mutable part, filled lazily
    lookups: dict[str, frozenset[int]] = field(default_factory=dict, compare=False)

    @classmethod
    def build(cls, commands: Iterable[Command]) -> _Snapshot:
        ordered = tuple(by_recency(commands))
        lowered = tuple(c.text.lower() for c in ordered)
        index: dict[str, set[int]] = {}
        for position, text in enumerate(lowered):
            for word in text.split():
                index.setdefault(word, set()).add(position)
                cleaned = clean_word(word)
                if cleaned and cleaned != word:
                    index.setdefault(cleaned, set()).add(position)
        return cls(
            commands=ordered,
            lowered=lowered,
            index={word: frozenset(positions) for word, positions in index.items()},
        )

    def positions_for(self, term: str) -> frozenset[int]:
        """→ Positions of every command whose lowered text contains `term`

        A term has no whitespace, so any occurrence of it lies inside one
        whitespace-delimited word: scanning the vocabulary is as exact as
        scanning the texts. Only a term found in no word at all falls back to
        the texts themselves. Results are remembered per snapshot, so the
        prefixes re-sent while a query is typed are dictionary lookups.
        """
        cached = self.lookups.get(term)
        if cached is not None:
            return cached
        positions: set[int] = set()
        for word, hits in self.index.items():
            if term in word:
                positions.update(hits)
        if not positions:
            positions = {i for i, text in enumerate(self.lowered) if term in text}
        result = self.lookups[term] = frozenset(positions)
        return result


class MemoryStorage(Storage):
    """In-memory Storage with an inverted word index.

    `store` builds a new snapshot off to the side and swaps it in with a
    single reference assignment; every query reads exactly one snapshot, so a
    query never sees a half-built index.
    """

    def __init__(self, max_items: int = DEFAULT_MAX_ITEMS):
        self.max_items = max_items
        self._snapshot = _Snapshot()
        self._store_lock = threading.Lock()

    def store(self, commands: list[Command]) -> None:
        snapshot = _Snapshot.build(commands)
        with self._store_lock:
            self._snapshot = snapshot

    def search(self, query: str) -> list[Command]:
        snapshot = self._snapshot
        terms = query.lower().split()
        if not terms:
            return self._recent(snapshot, self.max_items)

        matches: frozenset[int] | None = None
        for term in sorted(set(terms), key=len, reverse=True):
            hits = snapshot.positions_for(term)
            matches = hits if matches is None else matches & hits
            if not matches:
                return []

        return by_frequency(snapshot.commands[i] for i in matches)

    @staticmethod
    def _recent(snapshot: _Snapshot, limit: int) -> list[Command]:
        commands = list(snapshot.commands)
        if limit > 0:
            return commands[:limit]
        return commands

    def get_recent(self, limit: int = 0) -> list[Command]:
        """→ The `limit` most recent commands; 0 means all of them"""
        return self._recent(self._snapshot, limit)

    def get_by_frequency(self) -> list[Command]:
        return by_frequency(self._snapshot.commands)

    def get_all(self) -> list[Command]:
        return list(self._snapshot.commands)

    def stats(self) -> dict[str, int]:
        snapshot = self._snapshot
        return {
            "total_commands": len(snapshot.commands),
            "unique_words": len(snapshot.index),
        }
