"""
Command templates: static name/command/description/category entries kept in
a YAML file next to the configuration.

    templates:
      - name: Git status
        command: git status
        description: Show working tree status
        category: git
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from pathlib import Path

import yaml

from histnav.errors import TemplateError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Template:
    name: str
    command: str
    description: str = ""
    category: str = ""

    def display(self) -> str:
        """→ "Name - command (description)" as shown in list views"""
        text = f"{self.name} - {self.command}"
        if self.description:
            text += f" ({self.description})"
        return text


DEFAULT_TEMPLATES = [
    Template("Git status", "git status", "Show working tree status", "git"),
    Template("Git log oneline", "git log --oneline -10", "Show last 10 commits in one line", "git"),
    Template("Git branch", "git branch -a", "List all branches", "git"),
    Template("Git diff", "git diff", "Show changes in working directory", "git"),
    Template("Docker ps", "docker ps -a", "List all containers", "docker"),
    Template("Docker images", "docker images", "List all images", "docker"),
    Template("Docker logs", "docker logs -f", "Follow container logs", "docker"),
    Template("Disk usage", "df -h", "Show disk space usage", "system"),
    Template("Memory usage", "free -h", "Show memory usage", "system"),
    Template("Process tree", "pstree", "Display running processes as tree", "system"),
    Template("Top processes", "top", "Display running processes", "system"),
    Template("Network connections", "netstat -tulpn", "Show network connections", "network"),
    Template("Ping test", "ping -c 4 google.com", "Test network connectivity", "network"),
    Template("Find files", "find . -name", "Find files by name", "files"),
    Template("Archive create", "tar -czf archive.tar.gz", "Create compressed archive", "files"),
]


def _parse_template(entry: object, index: int) -> Template:
    if not isinstance(entry, dict):
        raise TemplateError(f"Template #{index + 1} must be a mapping")
    try:
        return Template(
            name=str(entry["name"]),
            command=str(entry["command"]),
            description=str(entry.get("description") or ""),
            category=str(entry.get("category") or ""),
        )
    except KeyError as e:
        raise TemplateError(f"Template #{index + 1} is missing {e.args[0]!r}") from e


class TemplateLoader:
    """Loads templates from a YAML file, creating it with defaults when missing."""

    def __init__(self, path: str | Path):
        self.path = Path(path).expanduser()

    def create_default(self) -> None:
        data = {"templates": [asdict(t) for t in DEFAULT_TEMPLATES]}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=False)
        except OSError as e:
            raise TemplateError(f"Could not create templates file {self.path}: {e}") from e
        logger.info("Wrote default templates to %s", self.path)

    def load(self) -> list[Template]:
        """→ Templates sorted by category, then name"""
        if not self.path.exists():
            self.create_default()

        try:
            data = yaml.safe_load(self.path.read_text(encoding="utf-8"))
        except OSError as e:
            raise TemplateError(f"Could not read templates file {self.path}: {e}") from e
        except yaml.YAMLError as e:
            raise TemplateError(f"Invalid YAML in {self.path}: {e}") from e

        if data is None:
            return []
        if not isinstance(data, dict) or not isinstance(data.get("templates", []), list):
            raise TemplateError(f"{self.path}: expected a 'templates' list")

        templates = [_parse_template(entry, i) for i, entry in enumerate(data.get("templates", []))]
        return sorted(templates, key=lambda t: (t.category, t.name))


def by_category(templates: list[Template]) -> dict[str, list[Template]]:
    """→ Templates grouped by category; an empty category is filed under "other" """
    groups: dict[str, list[Template]] = defaultdict(list)
    for template in templates:
        groups[template.category or "other"].append(template)
    return dict(groups)


def search_templates(templates: list[Template], query: str) -> list[Template]:
    """→ Case-insensitive substring match on name, command, description or category"""
    if not query:
        return list(templates)
    needle = query.lower()
    return [
        t
        for t in templates
        if any(needle in value.lower() for value in (t.name, t.command, t.description, t.category))
    ]
