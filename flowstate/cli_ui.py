"""Console rendering for the flowstate CLI.

The CLI plays the part of a page: it shows where the flow navigates, the
gate's status line, the stored session, and flow config summaries. Rich
and questionary are only used from here.
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, List, Optional, Sequence

import questionary
from questionary import Style as QStyle
from rich.console import Console, Group
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

THEME = Theme(
    {
        "ok": "green",
        "fail": "bold red",
        "notice": "yellow",
        "status": "dim italic",
        "page": "bold cyan underline",
        "field": "bold",
    }
)

console = Console(theme=THEME, highlight=False)

PROMPT_STYLE = QStyle([("qmark", "fg:yellow bold"), ("question", "bold")])

_MAX_WIDTH = 80


def _width() -> int:
    return min(console.width, _MAX_WIDTH)


def ok(msg: str) -> None:
    console.print(f"  [ok]✓[/] {msg}")


def fail(msg: str, hint: Optional[str] = None) -> None:
    """Error line as the page's error element would show it."""
    console.print(f"  [fail]✗ {msg}[/]")
    if hint:
        console.print(f"    [status]{hint}[/]")


def notice(msg: str) -> None:
    console.print(f"  [notice]![/] {msg}")


def status(msg: str) -> None:
    """Status line, e.g. the waiting message while a webhook call is in flight."""
    console.print(f"  [status]{msg}[/]")


def navigate(destination: str) -> None:
    console.print(Text.assemble(("  → ", "status"), (destination, "page")))


def waiting(message: str) -> Any:
    """Spinner for the duration of a blocking call."""
    return console.status(f"  {message}", spinner="dots")


def session_panel(key: str, record: Dict[str, Any]) -> None:
    """The stored session record: storage key, initialized flag, and the JSON body."""
    header = Text.assemble(
        ("Key: ", "field"),
        key,
        "\n",
        ("Initialized: ", "field"),
        "yes" if record.get("initialized") else "no",
        "\n",
    )
    body = Syntax(
        json.dumps(
            {"variables": record.get("variables", {}), "form": record.get("form", {})},
            indent=2,
            ensure_ascii=False,
            default=str,
        ),
        "json",
        theme="ansi_dark",
    )
    console.print()
    console.print(
        Panel(
            Group(header, body),
            title="Session",
            title_align="left",
            border_style="dim",
            width=_width(),
            padding=(0, 1),
        )
    )


def summary_panel(title: str, items: Dict[str, str]) -> None:
    body = "\n".join(f"[field]{k}:[/] {v}" for k, v in items.items())
    console.print()
    console.print(
        Panel(body, title=title, title_align="left", border_style="dim", width=_width(), padding=(0, 1))
    )


def listing(title: str, columns: Sequence[str], rows: List[List[str]]) -> None:
    """Table of steps or archive entries."""
    table = Table(
        title=title,
        title_style="field",
        header_style="bold dim",
        border_style="dim",
        width=_width(),
        padding=(0, 1),
    )
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*row)
    console.print()
    console.print(table)


def confirm(message: str, default: bool = True) -> bool:
    """Yes/no prompt; Ctrl-C exits quietly."""
    answer: Optional[bool] = questionary.confirm(message, default=default, style=PROMPT_STYLE).ask()
    if answer is None:
        raise SystemExit(0)
    return answer


def is_interactive() -> bool:
    return hasattr(sys.stdin, "isatty") and sys.stdin.isatty()
