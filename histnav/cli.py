"""
histnav - terminal history navigator

Reads your shell history files (zsh EXTENDED_HISTORY and plain bash), merges
and deduplicates them, and lets you browse, search and copy commands.

Usage
-----
    histnav                      # interactive browser
    histnav list --frequency     # most used commands
    histnav search git push      # commands containing every word
    histnav templates docker     # saved command templates

Configuration lives in ~/.config/history-nav/config.yaml (created on first run).
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from rich.logging import RichHandler
from rich.markup import escape

from histnav.command import Command
from histnav.config import Config, load_config
from histnav.errors import ConfigError, ExcludePatternError, TemplateError
from histnav.reader import HistoryReader, load_history
from histnav.render import make_console, render_commands, render_templates
from histnav.storage import MemoryStorage
from histnav.templates import Template, TemplateLoader, search_templates

console = make_console(stderr=True)

logger = logging.getLogger("histnav")


def _console_print(string="", *args, **kwargs) -> None:
    """→ Safe console printing with fallback"""
    try:
        console.print(string, *args, **kwargs)
    except Exception:
        kwargs_clean = {k: v for k, v in kwargs.items() if k in ("sep", "end", "flush")}
        print(string, *args, file=sys.stderr, **kwargs_clean)


def setup_logging(verbose: bool = False) -> None:
    """→ Route histnav's log records to the themed stderr console"""
    handler = RichHandler(console=console, show_path=False, show_time=verbose, markup=False)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.handlers[:] = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


# ============================================================================
# PIPELINE SETUP
# ============================================================================


def build_reader(config: Config) -> HistoryReader:
    """→ A reader for the configured sources; bad exclude patterns are reported, not fatal"""
    reader = config.build_reader()
    try:
        reader.set_exclude_patterns(config.exclude_patterns)
    except ExcludePatternError as e:
        _console_print(f"[warning]Warning: {escape(str(e))}[/warning]", highlight=False)
    return reader


def load_templates(config: Config) -> list[Template]:
    try:
        return TemplateLoader(config.templates_path).load()
    except TemplateError as e:
        _console_print(f"[warning]Warning: Failed to load templates: {escape(str(e))}[/warning]", highlight=False)
        return []


def apply_overrides(config: Config, args: argparse.Namespace) -> Config:
    if args.source:
        config.sources = [str(Path(s).expanduser()) for s in args.source]
    if args.max_lines is not None:
        config.performance.max_history_lines = args.max_lines
    return config


# ============================================================================
# SUBCOMMANDS
# ============================================================================


def _limit(args: argparse.Namespace, config: Config) -> int:
    return args.limit if args.limit is not None else config.ui.max_items


def _print_commands(commands: list[Command], title: str, config: Config) -> None:
    out = make_console()
    if not commands:
        out.print("[warning]No matching commands.[/warning]")
        return
    out.print(
        render_commands(
            commands,
            title=title,
            show_timestamps=config.ui.show_timestamps,
            show_frequency=config.ui.show_frequency,
        )
    )


def cmd_list(args: argparse.Namespace, config: Config, storage: MemoryStorage) -> int:
    limit = _limit(args, config)
    if args.frequency:
        commands = storage.get_by_frequency()
        if limit > 0:
            commands = commands[:limit]
        title = "Most frequent commands"
    else:
        commands = storage.get_recent(limit)
        title = "Most recent commands"
    _print_commands(commands, title, config)
    return 0


def cmd_search(args: argparse.Namespace, config: Config, storage: MemoryStorage) -> int:
    query = " ".join(args.query)
    commands = storage.search(query)
    limit = _limit(args, config)
    if limit > 0:
        commands = commands[:limit]
    _print_commands(commands, f"Search: {query}", config)
    return 0


def cmd_templates(args: argparse.Namespace, config: Config) -> int:
    templates = search_templates(load_templates(config), " ".join(args.query))
    out = make_console()
    if not templates:
        out.print("[warning]No matching templates.[/warning]")
        return 0
    out.print(render_templates(templates))
    return 0


def cmd_browse(config: Config, reader: HistoryReader, storage: MemoryStorage) -> int:
    from histnav.app import HistoryNavigatorApp

    app = HistoryNavigatorApp(
        storage,
        templates=load_templates(config),
        ui=config.ui,
        reload=lambda: load_history(reader, storage),
    )
    app.run()
    return 0


# ============================================================================
# MAIN
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="histnav",
        description="Browse, search and copy commands from your shell history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    ap.add_argument("--config", type=Path, metavar="FILE", help="Configuration file to use")
    ap.add_argument(
        "--source",
        action="append",
        metavar="FILE",
        help="History file to read (repeatable; overrides configured sources)",
    )
    ap.add_argument("--max-lines", type=int, metavar="N", help="Read at most the last N lines per file")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log debugging details to stderr")

    sub = ap.add_subparsers(dest="command")

    p_list = sub.add_parser("list", help="Print recent (or most frequent) commands")
    p_list.add_argument("-f", "--frequency", action="store_true", help="Order by usage count")
    p_list.add_argument("-n", "--limit", type=int, metavar="N", help="Maximum number of commands")

    p_search = sub.add_parser("search", help="Print commands containing every given word")
    p_search.add_argument("query", nargs="+", help="Words that must all appear")
    p_search.add_argument("-n", "--limit", type=int, metavar="N", help="Maximum number of commands")

    p_templates = sub.add_parser("templates", help="Print command templates")
    p_templates.add_argument("query", nargs="*", help="Optional filter")

    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = apply_overrides(load_config(args.config), args)
    except ConfigError as e:
        _console_print(f"[error]Error: {escape(str(e))}[/error]", highlight=False)
        return 1

    if args.command == "templates":
        return cmd_templates(args, config)

    reader = build_reader(config)
    storage = MemoryStorage(config.ui.max_items)
    load_history(reader, storage)

    if args.command == "list":
        return cmd_list(args, config, storage)
    if args.command == "search":
        return cmd_search(args, config, storage)
    return cmd_browse(config, reader, storage)


def run() -> None:
    raise SystemExit(main(sys.argv[1:]))


if __name__ == "__main__":
    run()
