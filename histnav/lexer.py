"""
Syntax highlighting for one-line history commands: a Pygments lexer plus
Rich syntax themes matching the app's "dark" and "light" settings.

    console.print(highlight("git commit -m 'wip' && git push", "dark"))
"""

from __future__ import annotations

import re

from pygments.lexer import RegexLexer, bygroups, include
from pygments.token import (
    Comment,
    Error,
    Keyword,
    Name,
    Number,
    Operator,
    Punctuation,
    String,
    Text,
    Token,
)
from rich.style import Style
from rich.syntax import Syntax, SyntaxTheme

# Custom token types
Argument = Token.Name.Argument
Expansion = Token.Name.Variable.Expansion
Precommand = Token.Keyword.Precommand

PRECOMMANDS = r"sudo|doas|env|nohup|time|exec|command|builtin|nice|xargs"
BUILTINS = r"echo|printf|cd|pwd|export|unset|source|alias|exit|return|history|fc|set|eval|read|test"
RESERVED = r"if|fi|else|elif|then|for|in|while|until|do|done|case|esac|function|select"


class CommandLexer(RegexLexer):
    """
    Lexer for single history entries. The first word of every pipeline
    segment is the command name; words after a precommand such as `sudo`
    are treated as command names too.
    """

    name = "Shell history command"
    aliases = ["histcmd"]
    filenames: list[str] = []

    flags = re.MULTILINE

    tokens = {
        "_common": [
            (r"\\.", String.Escape),
            (r"\$\(", String.Interpol, "substitution"),
            (r"`[^`]*`", String.Backtick),
            (r"\$\{[^}]*\}", Expansion),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r"'[^']*'", String.Single),
            (r'"', String.Double, "double_quoted"),
        ],
        "root": [
            (r"\s+", Text),
            (r"#.*$", Comment.Single),
            (r"\b(%s)\b" % RESERVED, Keyword.Reserved),
            (r"\b(%s)\b" % PRECOMMANDS, Precommand),
            (r"([a-zA-Z_][a-zA-Z0-9_]*)(=)", bygroups(Name.Variable, Operator)),
            (r"(\|\||&&|[|;&])", Operator),
            (r"[()\[\]{}]", Punctuation),
            (r"\b(%s)\b" % BUILTINS, Name.Builtin, "arguments"),
            include("_common"),
            (r"[a-zA-Z0-9_./~+:@%-]+", Name.Function, "arguments"),
        ],
        "arguments": [
            (r"\n", Text, "#pop"),
            (r"(\|\||&&|[|;&])", Operator, "#pop"),
            (r"\)", Punctuation, "#pop"),
            (r"\s+#.*$", Comment.Single),
            (r"\s+", Text),
            (r"[0-9]*(>>?|<<?<?|>&|<&)[0-9-]*", Operator),
            (r"(?:--?|\+)[a-zA-Z0-9][\w-]*", Name.Attribute),
            (r"=", Operator),
            (r"\b[0-9]+\b", Number.Integer),
            include("_common"),
            (r"[^=\s;&|()<>'\"$`\\]+", Argument),
        ],
        "double_quoted": [
            (r'"', String.Double, "#pop"),
            (r'\\(["$`\\])', String.Escape),
            (r"\$\(", String.Interpol, "substitution"),
            (r"\$\{[^}]*\}", Expansion),
            (r"\$[a-zA-Z0-9_@*#?$!~-]+", Name.Variable),
            (r'[^"\\$]+', String.Double),
            (r"[\\$]", String.Double),
        ],
        "substitution": [
            (r"\)", String.Interpol, "#pop"),
            include("root"),
        ],
    }


# ============================================================================
# THEMES
# ============================================================================


class HistoryTheme(SyntaxTheme):
    """Rich syntax theme; token types missing from `styles` inherit their parent's style."""

    def __init__(self, background: str, styles: dict, default: Style):
        self.background = background
        self.styles = styles
        self.default_style = default

    def get_style_for_token(self, token_type) -> Style:
        t = token_type
        while t is not None:
            style = self.styles.get(t)
            if style is not None:
                return style
            t = t.parent
        return self.default_style

    def get_background_style(self) -> Style:
        return Style(bgcolor=self.background)


def _dark() -> HistoryTheme:
    # Monokai Pro
    red, green, yellow, orange = "#ff6188", "#a9dc76", "#ffd866", "#fc9867"
    purple, cyan, white, gray = "#ab9df2", "#78dce8", "#fcfcfa", "#727072"
    return HistoryTheme(
        "#2d2a2e",
        {
            Name.Function: Style(color=green, bold=True),
            Precommand: Style(color=red, italic=True),
            Name.Attribute: Style(color=orange),
            Argument: Style(color=purple),
            Expansion: Style(color=purple),
            Name.Builtin: Style(color=cyan, italic=True),
            Name.Variable: Style(color=white),
            Number: Style(color=cyan),
            Keyword: Style(color=red, bold=True),
            Operator: Style(color=red),
            Punctuation: Style(color=white),
            String: Style(color=yellow),
            String.Escape: Style(color=purple),
            String.Interpol: Style(color=purple, bold=True),
            Comment: Style(color=gray, italic=True),
            Error: Style(color=red, bold=True),
            Text: Style(color=white),
        },
        Style(color=white),
    )


def _light() -> HistoryTheme:
    # One Light
    red, green, yellow, orange = "#e45649", "#50a14f", "#986801", "#c18401"
    purple, blue, black, gray = "#a626a4", "#4078f2", "#383a42", "#a0a1a7"
    return HistoryTheme(
        "#fafafa",
        {
            Name.Function: Style(color=blue, bold=True),
            Precommand: Style(color=red, italic=True),
            Name.Attribute: Style(color=orange),
            Argument: Style(color=purple),
            Expansion: Style(color=purple),
            Name.Builtin: Style(color=green, italic=True),
            Name.Variable: Style(color=black),
            Number: Style(color=orange),
            Keyword: Style(color=purple, bold=True),
            Operator: Style(color=red),
            Punctuation: Style(color=black),
            String: Style(color=green),
            String.Escape: Style(color=yellow),
            String.Interpol: Style(color=yellow, bold=True),
            Comment: Style(color=gray, italic=True),
            Error: Style(color=red, bold=True),
            Text: Style(color=black),
        },
        Style(color=black),
    )


THEMES = {"dark": _dark, "light": _light}


def theme_for(name: str) -> HistoryTheme:
    """→ The named theme; unknown names fall back to "dark" """
    return THEMES.get(name, _dark)()


def highlight(command: str, theme: str = "dark") -> Syntax:
    """→ A Rich renderable of `command` with shell highlighting"""
    return Syntax(command, CommandLexer(), theme=theme_for(theme), word_wrap=True)
