import json
import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from restfetch.domain.interfaces.user_interface import UserInterface
from restfetch.domain.models.rate_limit import RateLimitState

logger = logging.getLogger(__name__)

# Fields shown first when present, matching common REST resources.
PREFERRED_COLUMNS = ("id", "number", "name", "full_name", "login", "title", "state", "language", "stargazers_count")
MAX_INFERRED_COLUMNS = 6


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False)[:60]
    return str(value)


class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library.

    Results go to stdout; info, warnings and errors go to stderr so that
    output stays pipeable.
    """

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console()
        self.err_console = err_console or Console(stderr=True)

    def display_json(self, payload: Any, **kwargs: Any) -> None:
        """Prints a payload as JSON.

        Args:
            payload: Any JSON-compatible value.
            **kwargs: `raw=True` prints compact JSON with no highlighting.
        """
        text = json.dumps(payload, ensure_ascii=False, indent=None if kwargs.get("raw") else 2)
        if kwargs.get("raw"):
            self.console.out(text, highlight=False)
        else:
            self.console.print_json(text)

    def _infer_columns(self, items: List[Any]) -> List[str]:
        keys: List[str] = []
        nested = set()
        for item in items:
            if not isinstance(item, dict):
                continue
            for key, value in item.items():
                if isinstance(value, (dict, list)):
                    nested.add(key)
                if key not in keys:
                    keys.append(key)
        preferred = [k for k in PREFERRED_COLUMNS if k in keys]
        rest = [k for k in keys if k not in preferred and k not in nested]
        return (preferred + rest)[:MAX_INFERRED_COLUMNS]

    def display_items(self, items: Iterable[Any], columns: Optional[Iterable[str]] = None) -> None:
        """Renders collection items as a table (plain values get one column)."""
        items = list(items)
        if not items:
            self.display_info("No items returned.")
            return

        cols = list(columns) if columns else self._infer_columns(items)
        table = Table(box=ROUNDED, show_lines=False, header_style="bold cyan")
        if not cols:
            table.add_column("value")
            for item in items:
                table.add_row(_cell(item))
        else:
            for col in cols:
                table.add_column(col)
            for item in items:
                row = item if isinstance(item, dict) else {}
                table.add_row(*(_cell(row.get(col)) for col in cols))
        table.caption = f"{len(items)} item(s)"
        self.console.print(table)

    def display_rate_limit(self, state: Optional[RateLimitState]) -> None:
        if state is None:
            self.display_warning("The service did not report rate-limit information.")
            return
        reset = datetime.fromtimestamp(state.reset_at).strftime("%Y-%m-%d %H:%M:%S")
        table = Table(box=SIMPLE, show_header=False)
        table.add_column("field", style="bold")
        table.add_column("value")
        table.add_row("Limit", str(state.limit))
        table.add_row("Remaining", str(state.remaining))
        if state.used is not None:
            table.add_row("Used", str(state.used))
        if state.resource:
            table.add_row("Resource", state.resource)
        table.add_row("Resets at", reset)
        style = "red" if state.exhausted else "green"
        self.console.print(Panel(table, title="[bold]Rate limit[/bold]", border_style=style, box=ROUNDED))

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.err_console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        self.err_console.print(f"[blue]Info:[/blue] {info_message}")

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        logger.debug(f"Display warning: {warning_message}")
        self.err_console.print(f"[yellow]Warning:[/yellow] {warning_message}")
