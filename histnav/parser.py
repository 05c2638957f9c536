"""
Line parser: one raw history-file line in, zero or one Command out.

Two dialects are understood:

- PLAIN: the trimmed line is the command. Ordering comes from the caller.
- EXTENDED: zsh EXTENDED_HISTORY, ": <epoch>:<elapsed>[:<exit>];<command>".

Nothing here raises on bad input. A line that cannot be made sense of yields
None, and a timestamp that cannot be trusted is replaced by the caller's
position key.
"""

from __future__ import annotations

import re

from histnav.command import DEFAULT_WINDOW, Command, Dialect, TimestampWindow

MARKER = ":"
SEPARATOR = ";"

# bash writes "#<epoch>" above each command when HISTTIMEFORMAT is set
BASH_TIMESTAMP_RE = re.compile(r"^#(\d+)\s*$")


# ============================================================================
# FIELD PARSING
# ============================================================================


def _parse_int(field: str) -> int | None:
    field = field.strip()
    if not field:
        return None
    try:
        return int(field)
    except ValueError:
        return None


def parse_timestamp(field: str, window: TimestampWindow = DEFAULT_WINDOW) -> float | None:
    """→ Epoch seconds from a metadata field, or None if non-numeric or outside the window"""
    seconds = _parse_int(field)
    if seconds is None or not window.contains(seconds):
        return None
    return float(seconds)


def bash_timestamp_field(line: str) -> str | None:
    """→ The digits of a bash "#<epoch>" comment line, None for any other line"""
    m = BASH_TIMESTAMP_RE.match(line.strip())
    return m.group(1) if m else None


def detect_dialect(line: str) -> Dialect:
    if line.lstrip().startswith(MARKER):
        return Dialect.EXTENDED
    return Dialect.PLAIN


# ============================================================================
# LINE PARSING
# ============================================================================


def _recover_malformed(line: str, position_key: float) -> Command | None:
    """→ Best effort for an extended line without a usable separator

    `: noop` is a real invocation of the shell's null command and is kept.
    Anything with a colon left in it is truncated metadata, and `:garbage`
    (no space after the marker) is neither metadata nor a command.
    """
    remainder = line[len(MARKER):]
    if not remainder[:1].isspace():
        return None
    text = remainder.strip()
    if not text or MARKER in text:
        return None
    return Command(text=text, ordering_key=position_key, synthetic=True)


def _parse_extended(line: str, position_key: float, window: TimestampWindow) -> Command | None:
    sep = line.find(SEPARATOR, len(MARKER))
    if sep == -1 or sep == len(line) - 1:
        return _recover_malformed(line, position_key)

    text = line[sep + 1 :].strip()
    if not text:
        return None

    fields = line[len(MARKER) : sep].split(":")
    timestamp = parse_timestamp(fields[0], window)

    exit_code = _parse_int(fields[2]) if len(fields) >= 3 else None

    return Command(
        text=text,
        ordering_key=position_key if timestamp is None else timestamp,
        synthetic=timestamp is None,
        exit_code=exit_code or 0,
        has_exit_code=exit_code is not None,
    )


def parse_line(
    line: str,
    position_key: float,
    dialect: Dialect | None = None,
    window: TimestampWindow = DEFAULT_WINDOW,
) -> Command | None:
    """Parse one raw history line.

    Arguments:
        line - the raw line, with or without its trailing newline
        position_key - synthetic ordering key used when the line carries no
            trustworthy timestamp
        dialect - the file's dialect; None detects it from the line itself
        window - plausible calendar-year range for recorded timestamps

    Inside an EXTENDED file, lines that do not start with the marker are
    taken as plain commands, the way zsh without EXTENDED_HISTORY writes them.
    """
    stripped = line.strip()
    if not stripped:
        return None

    if dialect is None:
        dialect = detect_dialect(stripped)

    if dialect is Dialect.EXTENDED and stripped.startswith(MARKER):
        return _parse_extended(stripped, position_key, window)

    return Command(text=stripped, ordering_key=position_key, synthetic=True)
