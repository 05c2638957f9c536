"""Exception hierarchy. Everything raised on purpose by histnav derives from HistnavError."""

from __future__ import annotations


class HistnavError(Exception):
    """Base class for all histnav errors."""


class ConfigError(HistnavError):
    """The configuration file could not be read or parsed."""


class ExcludePatternError(HistnavError):
    """One or more exclusion patterns failed to compile.

    The patterns that did compile are still installed; `errors` lists the
    rejected ones as (pattern, reason) pairs.
    """

    def __init__(self, errors: list[tuple[str, str]]):
        self.errors = errors
        details = "; ".join(f"{pattern!r}: {reason}" for pattern, reason in errors)
        super().__init__(f"Invalid exclude pattern(s): {details}")


class TemplateError(HistnavError):
    """The templates file could not be created, read or parsed."""


class ClipboardError(HistnavError):
    """No clipboard utility is available, or it failed."""
