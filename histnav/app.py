"""
Keyboard-driven browser for the aggregated history (Textual).

The app only talks to a `Storage`; reading the history files is done by the
`reload` callback handed in by the CLI, so pressing `r` swaps in a freshly
built snapshot without the app knowing where the data came from.
"""

from __future__ import annotations

from typing import Callable, Union

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.reactive import reactive
from textual.widgets import Footer, Header, Input, OptionList, Static
from textual.widgets.option_list import Option

from histnav import clipboard
from histnav.command import Command
from histnav.config import UIConfig
from histnav.errors import ClipboardError, HistnavError
from histnav.lexer import highlight
from histnav.render import format_age
from histnav.storage import Storage, failed, successful
from histnav.templates import Template, search_templates

Item = Union[Command, Template]

HELP_TEXT = """\
[b]Keys[/b]
  /        search (type to filter, esc to clear)
  enter    copy the highlighted command
  f        toggle frequency / recency order
  s        only successful commands
  x        only failed commands
  t        toggle templates
  h        back to history
  r        re-read history files
  ?        toggle this help
  q        quit
"""

LISTING_TITLES = {
    "recent": "Most recent first",
    "frequency": "Sorted by frequency",
    "successful": "Showing only successful commands",
    "failed": "Showing only failed commands",
}


def truncate(text: str, max_len: int = 50) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


class HistoryNavigatorApp(App[None]):
    TITLE = "histnav"

    CSS = """
    #search {
        dock: top;
        margin: 0 1;
    }
    #results {
        height: 1fr;
        margin: 0 1;
        border: round $primary;
    }
    #results:focus {
        border: round #FF4500;
    }
    #preview {
        height: auto;
        max-height: 8;
        margin: 0 1;
        padding: 0 1;
        border: round #4B5263;
    }
    #status {
        height: 1;
        margin: 0 2;
        color: #98C379;
    }
    #status.error {
        color: #E06C75;
    }
    #help {
        display: none;
        margin: 0 2;
        padding: 1 2;
        border: round #4B5263;
    }
    #help.visible {
        display: block;
    }
    """

    BINDINGS = [
        Binding("slash", "focus_search", "Search"),
        Binding("f", "toggle_frequency", "Frequency"),
        Binding("s", "only_successful", "Successful"),
        Binding("x", "only_failed", "Failed"),
        Binding("t", "toggle_templates", "Templates"),
        Binding("h", "show_history", "History", show=False),
        Binding("r", "reload", "Refresh"),
        Binding("question_mark", "toggle_help", "Help"),
        Binding("escape", "clear", "Clear", show=False, priority=True),
        Binding("q", "quit", "Quit"),
    ]

    browse_mode = reactive("history")
    listing = reactive("recent")

    def __init__(
        self,
        storage: Storage,
        templates: list[Template] | None = None,
        ui: UIConfig | None = None,
        reload: Callable[[], object] | None = None,
        copy: Callable[[str], None] = clipboard.copy,
        *args,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.storage = storage
        self.templates = templates or []
        self.ui_config = ui or UIConfig()
        self.reload_history = reload
        self.copy_command = copy
        self.query_text = ""
        self.items: list[Item] = []

    def compose(self) -> ComposeResult:
        yield Header()
        yield Input(placeholder="Search history (all words must match)", id="search")
        yield OptionList(id="results")
        yield Static(id="preview")
        yield Static(id="help")
        yield Static(id="status")
        yield Footer()

    def on_mount(self) -> None:
        self.query_one("#help", Static).update(Text.from_markup(HELP_TEXT))
        self.load_items()
        self.query_one("#results", OptionList).focus()

    # ------------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------------

    def current_items(self) -> list[Item]:
        limit = self.ui_config.max_items
        if self.browse_mode == "templates":
            return list(search_templates(self.templates, self.query_text))
        if self.query_text.strip():
            return list(self.storage.search(self.query_text)[:limit])
        if self.listing == "frequency":
            return list(self.storage.get_by_frequency()[:limit])
        recent = self.storage.get_recent(limit)
        if self.listing == "successful":
            return list(successful(recent))
        if self.listing == "failed":
            return list(failed(recent))
        return list(recent)

    def _prompt(self, item: Item) -> Text:
        if isinstance(item, Template):
            return Text(item.display())
        prompt = Text()
        if self.ui_config.show_frequency:
            prompt.append(f"{item.count:>4} ", style="#61AFEF")
        if self.ui_config.show_timestamps:
            prompt.append(f"{format_age(item):>4} ", style="#5C6370")
        if item.failed:
            prompt.append(f"[{item.exit_code}] ", style="#E06C75")
        prompt.append(item.text)
        return prompt

    def load_items(self) -> None:
        self.items = self.current_items()
        results = self.query_one("#results", OptionList)
        results.clear_options()
        results.add_options([Option(self._prompt(item)) for item in self.items])
        if self.items:
            results.highlighted = 0
        self.show_preview(0 if self.items else None)

    def selected_text(self, index: int | None) -> str:
        if index is None or not 0 <= index < len(self.items):
            return ""
        item = self.items[index]
        return item.command if isinstance(item, Template) else item.text

    # ------------------------------------------------------------------------
    # Status & preview
    # ------------------------------------------------------------------------

    def set_status(self, message: str, error: bool = False) -> None:
        status = self.query_one("#status", Static)
        status.set_class(error, "error")
        status.update(Text(message))

    def show_preview(self, index: int | None) -> None:
        preview = self.query_one("#preview", Static)
        text = self.selected_text(index)
        preview.update(highlight(text, self.ui_config.theme) if text else "")

    # ------------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------------

    @on(Input.Changed, "#search")
    def handle_search(self, event: Input.Changed) -> None:
        self.query_text = event.value
        self.load_items()

    @on(Input.Submitted, "#search")
    def handle_search_submitted(self, event: Input.Submitted) -> None:
        results = self.query_one("#results", OptionList)
        self.copy_item(results.highlighted)

    @on(OptionList.OptionHighlighted, "#results")
    def handle_highlighted(self, event: OptionList.OptionHighlighted) -> None:
        self.show_preview(event.option_index)

    @on(OptionList.OptionSelected, "#results")
    def handle_selected(self, event: OptionList.OptionSelected) -> None:
        self.copy_item(event.option_index)

    def copy_item(self, index: int | None) -> None:
        text = self.selected_text(index)
        if not text:
            self.set_status("No item selected", error=True)
            return
        try:
            self.copy_command(text)
        except ClipboardError as e:
            self.set_status(str(e), error=True)
            return
        self.set_status(f"Copied: {truncate(text)}")

    # ------------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------------

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def _switch_listing(self, listing: str) -> None:
        self.browse_mode = "history"
        self.listing = listing
        self.load_items()
        self.set_status(LISTING_TITLES[listing])

    def action_toggle_frequency(self) -> None:
        self._switch_listing("recent" if self.listing == "frequency" else "frequency")

    def action_only_successful(self) -> None:
        self._switch_listing("successful")

    def action_only_failed(self) -> None:
        self._switch_listing("failed")

    def action_show_history(self) -> None:
        self.query_text = ""
        self.query_one("#search", Input).value = ""
        self._switch_listing("recent")

    def action_toggle_templates(self) -> None:
        if self.browse_mode == "templates":
            self.action_show_history()
            return
        self.browse_mode = "templates"
        self.load_items()
        self.set_status("Templates mode")

    def action_reload(self) -> None:
        if self.reload_history is not None:
            try:
                self.reload_history()
            except HistnavError as e:
                self.set_status(f"Refresh failed: {e}", error=True)
                return
        self.load_items()
        self.set_status(f"Refreshed ({self.storage.stats()['total_commands']} commands)")

    def action_toggle_help(self) -> None:
        self.query_one("#help", Static).toggle_class("visible")

    def action_clear(self) -> None:
        search = self.query_one("#search", Input)
        if search.value:
            search.value = ""
        self.query_one("#help", Static).remove_class("visible")
        self.query_one("#results", OptionList).focus()
        self.set_status("")
