"""
Rich renderables for the non-interactive commands (`histnav list`, `search`,
`templates`).
"""

from __future__ import annotations

from datetime import datetime

from rich import box
from rich.console import Console, Group
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from histnav.command import Command
from histnav.templates import Template, by_category

# Styles referenced by name throughout the CLI output
CUSTOM_THEME = Theme({
    "title": "bold #C678DD",
    "reason": "bold #98C379",
    "context": "#5C6370",
    "border": "#4B5263",
    "info": "#61AFEF",
    "success": "#98C379",
    "warning": "#E5C07B",
    "error": "#E06C75",
})


def make_console(**kwargs) -> Console:
    """→ A Console that knows the theme's style names"""
    return Console(theme=CUSTOM_THEME, **kwargs)


def format_when(command: Command) -> str:
    """→ "YYYY-MM-DD HH:MM" for recorded timestamps, "—" for synthetic ones"""
    ts = command.timestamp
    if ts is None:
        return "—"
    return ts.strftime("%Y-%m-%d %H:%M")


def format_age(command: Command, now: float | None = None) -> str:
    """→ Compact age such as "5m", "3h", "12d" relative to `now`"""
    if command.synthetic:
        return "—"
    now = datetime.now().timestamp() if now is None else now
    seconds = max(0, int(now - command.ordering_key))
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60)):
        if seconds >= size:
            return f"{seconds // size}{unit}"
    return f"{seconds}s"


def exit_status(command: Command) -> Text:
    if not command.has_exit_code:
        return Text("")
    if command.exit_code == 0:
        return Text("✓", style="success")
    return Text(str(command.exit_code), style="error")


def render_commands(
    commands: list[Command],
    title: str = "Command History",
    show_timestamps: bool = True,
    show_frequency: bool = True,
) -> Table:
    """Render commands as a Rich table, in the order given."""
    table = Table(
        title=title,
        box=box.ROUNDED,
        show_header=True,
        header_style="bold",
    )

    if show_frequency:
        table.add_column("Count", justify="right", style="info")
    if show_timestamps:
        table.add_column("Last used", justify="right", style="context")
    table.add_column("Exit", justify="center")
    table.add_column("Command", overflow="fold")

    for command in commands:
        row: list[str | Text] = []
        if show_frequency:
            row.append(str(command.count))
        if show_timestamps:
            row.append(format_when(command))
        row.append(exit_status(command))
        row.append(Text(command.text))
        table.add_row(*row)

    return table


def render_templates(templates: list[Template]) -> Group:
    """Render templates as one table per category."""
    tables = []
    for category, members in sorted(by_category(templates).items()):
        table = Table(title=category, box=box.SIMPLE, show_header=False, title_style="title")
        table.add_column("Name", style="reason")
        table.add_column("Command")
        table.add_column("Description", style="context")
        for template in members:
            table.add_row(template.name, Text(template.command), template.description)
        tables.append(table)
    return Group(*tables)
