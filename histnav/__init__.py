"""
histnav - browse, search and copy commands from local shell history files.

The core is a one-way pipeline:

    source paths -> ingest_file -> parse_line -> Aggregator -> MemoryStorage

Everything else (config, templates, clipboard, the Textual app) is a thin
wrapper around that pipeline.
"""

from __future__ import annotations

from histnav.aggregate import Aggregator
from histnav.command import Command, Dialect, TimestampWindow
from histnav.errors import (
    ClipboardError,
    ConfigError,
    ExcludePatternError,
    HistnavError,
    TemplateError,
)
from histnav.ingest import dialect_for_path, ingest_file
from histnav.parser import parse_line
from histnav.reader import HistoryReader, load_history
from histnav.storage import MemoryStorage, Storage

__version__ = "0.1.0"

__all__ = [
    "Aggregator",
    "ClipboardError",
    "Command",
    "ConfigError",
    "Dialect",
    "ExcludePatternError",
    "HistnavError",
    "HistoryReader",
    "MemoryStorage",
    "Storage",
    "TemplateError",
    "TimestampWindow",
    "dialect_for_path",
    "ingest_file",
    "load_history",
    "parse_line",
]
