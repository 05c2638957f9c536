from __future__ import annotations

from pathlib import Path

from histnav.command import Command

# 2023-11-14, inside the default timestamp window
NOW = 1_700_000_000.0


def cmd(
    text: str,
    key: float,
    exit_code: int | None = None,
    synthetic: bool = False,
    directory: str = "",
) -> Command:
    return Command(
        text=text,
        ordering_key=key,
        exit_code=exit_code or 0,
        has_exit_code=exit_code is not None,
        synthetic=synthetic,
        directory=directory,
    )


def write_history(directory: Path, name: str, lines: list[str]) -> Path:
    path = directory / name
    path.write_text("".join(line + "\n" for line in lines), encoding="utf-8")
    return path
