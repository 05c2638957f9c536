"""
File ingestor: reads the tail of one history file and turns it into raw Commands.

A missing file is normal (not every shell is installed) and yields nothing.
Any other I/O failure stops reading that file but keeps what was read.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from pathlib import Path
from typing import Iterable, Iterator

from histnav.command import DEFAULT_WINDOW, Command, Dialect, TimestampWindow
from histnav.parser import bash_timestamp_field, parse_line, parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_MAX_LINES = 5000

CONTINUATION = "\\"

# Gap between consecutive undated entries that sit just before a dated one
SYNTHETIC_STEP = 0.001


def dialect_for_path(path: str | Path) -> Dialect | None:
    """Guess the dialect of a history file from its name.

    - "zsh" anywhere in the name: EXTENDED
    - "bash" anywhere in the name, or a ".bash_history" suffix: PLAIN
    - anything else: None, meaning detect per line
    """
    p = Path(path)
    name = p.name.lower()
    if "zsh" in name:
        return Dialect.EXTENDED
    if "bash" in name or p.suffix == ".bash_history":
        return Dialect.PLAIN
    return None


def read_tail(path: Path, max_lines: int) -> list[str]:
    """→ The last `max_lines` lines of `path` (all of them if max_lines <= 0)

    Undecodable bytes are kept as surrogate escapes so that the aggregator can
    still recognise binary garbage.
    """
    tail: deque[str] = deque(maxlen=max_lines if max_lines > 0 else None)
    try:
        with path.open("r", encoding="utf-8", errors="surrogateescape") as f:
            for line in f:
                tail.append(line)
    except FileNotFoundError:
        logger.debug("History source %s does not exist; skipping", path)
    except OSError as e:
        logger.warning("Stopped reading %s after %d line(s): %s", path, len(tail), e)
    return list(tail)


def join_continuations(lines: Iterable[str]) -> Iterator[str]:
    """Group physical lines into history entries.

    zsh writes each newline inside a multi-line command as a backslash at the
    end of the line, so a line ending in one continues on the next. The
    backslashes are dropped and the pieces joined with newlines.
    """
    pending: list[str] = []
    for line in lines:
        line = line.rstrip("\r\n")
        if line.endswith(CONTINUATION):
            pending.append(line[: -len(CONTINUATION)])
            continue
        if pending:
            pending.append(line)
            yield "\n".join(pending)
            pending = []
        else:
            yield line
    if pending:
        yield "\n".join(pending)


def parse_lines(
    lines: Iterable[str],
    dialect: Dialect | None,
    now: float,
    window: TimestampWindow = DEFAULT_WINDOW,
) -> Iterator[Command]:
    """Parse a window of lines, oldest first.

    The synthetic key of entry i is `now - (n - 1 - i)`: the newest entry gets
    `now` and every earlier one a second less. A synthetic key is then lowered
    below the key of whatever follows it in the file, so an undated line
    written before a dated one never ranks above it.
    """
    if dialect is not Dialect.PLAIN:
        lines = join_continuations(lines)
    lines = list(lines)
    n = len(lines)
    pending_timestamp: float | None = None
    commands: list[Command] = []

    for i, line in enumerate(lines):
        position_key = now - (n - 1 - i)

        if dialect is not Dialect.EXTENDED:
            digits = bash_timestamp_field(line)
            if digits is not None:
                pending_timestamp = parse_timestamp(digits, window)
                continue

        command = parse_line(line, position_key, dialect, window)
        if command is None:
            continue

        if pending_timestamp is not None and command.synthetic:
            command.ordering_key = pending_timestamp
            command.synthetic = False
        pending_timestamp = None

        commands.append(command)

    next_key = float("inf")
    for command in reversed(commands):
        if command.synthetic and command.ordering_key >= next_key:
            command.ordering_key = next_key - SYNTHETIC_STEP
        next_key = command.ordering_key

    yield from commands


def ingest_file(
    path: str | Path,
    max_lines: int = DEFAULT_MAX_LINES,
    *,
    dialect: Dialect | None = None,
    now: float | None = None,
    window: TimestampWindow = DEFAULT_WINDOW,
) -> list[Command]:
    """Read one history source into raw (not yet deduplicated) Commands.

    Arguments:
        path - the history file
        max_lines - only the last `max_lines` lines are considered; <= 0 means all
        dialect - overrides the file-name heuristic of `dialect_for_path`
        now - anchor for synthetic ordering keys, defaults to the current time
        window - plausible calendar-year range for recorded timestamps
    """
    path = Path(path)
    if dialect is None:
        dialect = dialect_for_path(path)
    if now is None:
        now = time.time()

    lines = read_tail(path, max_lines)
    commands = list(parse_lines(lines, dialect, now, window))
    logger.debug(
        "%s: %d line(s) read, %d command(s) parsed (dialect=%s)",
        path,
        len(lines),
        len(commands),
        dialect.value if dialect else "auto",
    )
    return commands
