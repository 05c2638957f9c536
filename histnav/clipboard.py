"""
Copying to the system clipboard through the platform's command-line utilities.
"""

from __future__ import annotations

import shutil
import subprocess
import sys

from histnav.errors import ClipboardError

# Tried in order; the first one installed is used
COPY_COMMANDS: dict[str, list[list[str]]] = {
    "darwin": [["pbcopy"]],
    "linux": [
        ["wl-copy"],
        ["xclip", "-selection", "clipboard"],
        ["xsel", "--clipboard", "--input"],
    ],
    "win32": [["clip"]],
}


def _platform_key() -> str:
    return "linux" if sys.platform.startswith("linux") else sys.platform


def _candidates() -> list[list[str]]:
    commands = COPY_COMMANDS.get(_platform_key())
    if commands is None:
        raise ClipboardError(f"Copying to the clipboard is not supported on {sys.platform}")
    available = [argv for argv in commands if shutil.which(argv[0])]
    if not available:
        names = ", ".join(argv[0] for argv in commands)
        raise ClipboardError(f"No clipboard utility found (install one of: {names})")
    return available


def copy(text: str) -> None:
    """→ Put `text` on the system clipboard"""
    errors = []
    for argv in _candidates():
        try:
            subprocess.run(argv, input=text, text=True, check=True, capture_output=True, timeout=5)
            return
        except (OSError, subprocess.SubprocessError) as e:
            errors.append(f"{argv[0]}: {e}")
    raise ClipboardError("Failed to copy: " + "; ".join(errors))

