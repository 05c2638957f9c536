from __future__ import annotations

import asyncio
import time

from textual.widgets import Input, Static

from histnav.app import HistoryNavigatorApp, truncate
from histnav.command import Command
from histnav.config import UIConfig
from histnav.errors import ClipboardError
from histnav.storage import MemoryStorage
from histnav.templates import Template
from tests.helpers import NOW, cmd


def make_storage():
    git = cmd("git status", NOW - 1, exit_code=0)
    git.count = 3
    ls = cmd("ls -la", NOW - 3)
    ls.count = 5
    storage = MemoryStorage()
    storage.store([git, cmd("make", NOW - 2, exit_code=2), ls])
    return storage


def make_app(**kwargs):
    copied = []
    kwargs.setdefault("copy", copied.append)
    app = HistoryNavigatorApp(make_storage(), **kwargs)
    return app, copied


def drive(app, scenario):
    async def main():
        async with app.run_test() as pilot:
            await pilot.pause()
            await scenario(pilot)

    asyncio.run(main())


def texts(app):
    return [item.text if isinstance(item, Command) else item.command for item in app.items]


def test_starts_with_recent_commands():
    app, _ = make_app()

    async def scenario(pilot):
        assert texts(app) == ["git status", "make", "ls -la"]

    drive(app, scenario)


def test_frequency_toggle():
    app, _ = make_app()

    async def scenario(pilot):
        await pilot.press("f")
        assert app.listing == "frequency"
        assert texts(app) == ["ls -la", "git status", "make"]
        await pilot.press("f")
        assert texts(app) == ["git status", "make", "ls -la"]

    drive(app, scenario)


def test_success_and_failure_filters():
    app, _ = make_app()

    async def scenario(pilot):
        await pilot.press("x")
        assert texts(app) == ["make"]
        await pilot.press("s")
        assert texts(app) == ["git status", "ls -la"]

    drive(app, scenario)


def test_enter_copies_highlighted_command():
    app, copied = make_app()

    async def scenario(pilot):
        await pilot.press("down")
        await pilot.press("enter")
        await pilot.pause()
        assert copied == ["make"]
        assert not app.query_one("#status", Static).has_class("error")

    drive(app, scenario)


def test_clipboard_failure_is_shown_as_error():
    def broken(text):
        raise ClipboardError("No clipboard utility found")

    app, _ = make_app(copy=broken)

    async def scenario(pilot):
        await pilot.press("enter")
        await pilot.pause()
        assert app.query_one("#status", Static).has_class("error")

    drive(app, scenario)


def test_search_filters_items():
    app, _ = make_app()

    async def scenario(pilot):
        app.query_one("#search", Input).value = "GIT"
        await pilot.pause()
        assert texts(app) == ["git status"]
        await pilot.press("escape")
        await pilot.pause()
        assert app.query_one("#search", Input).value == ""
        assert len(app.items) == 3

    drive(app, scenario)


def test_templates_mode():
    templates = [Template("Disk usage", "df -h", "Show disk space usage", "system")]
    app, copied = make_app(templates=templates)

    async def scenario(pilot):
        await pilot.press("t")
        assert app.browse_mode == "templates"
        assert app.items == templates
        await pilot.press("enter")
        await pilot.pause()
        assert copied == ["df -h"]
        await pilot.press("t")
        assert app.browse_mode == "history"
        assert texts(app) == ["git status", "make", "ls -la"]

    drive(app, scenario)


def test_reload_swaps_in_new_history():
    storage_holder = {}

    def reload():
        storage_holder["app"].storage.store([cmd("terraform plan", NOW)])

    app, _ = make_app(reload=reload)
    storage_holder["app"] = app

    async def scenario(pilot):
        await pilot.press("r")
        assert texts(app) == ["terraform plan"]

    drive(app, scenario)


def test_help_toggle():
    app, _ = make_app()

    async def scenario(pilot):
        help_panel = app.query_one("#help", Static)
        await pilot.press("question_mark")
        assert help_panel.has_class("visible")
        await pilot.press("question_mark")
        assert not help_panel.has_class("visible")

    drive(app, scenario)


def test_truncate():
    assert truncate("short") == "short"
    assert truncate("x" * 60) == "x" * 47 + "..."


def test_rows_show_command_age():
    app, _ = make_app()
    prompt = app._prompt(cmd("make", time.time() - 7200)).plain
    assert "2h" in prompt
    assert prompt.endswith("make")


def test_rows_without_age():
    app, _ = make_app(ui=UIConfig(show_timestamps=False, show_frequency=False))
    assert app._prompt(cmd("make", time.time() - 7200)).plain == "make"
