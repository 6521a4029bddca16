"""
geco/cli/ui/console.py - Rich console utilities

Console output helpers and logging setup shared by every command.
"""

from __future__ import annotations

import logging
import platform
import sys

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from geco.config import LogConfig

# Discovery cache and credential lookups log loudly at INFO
NOISY_LOGGERS = ("googleapiclient.discovery_cache", "googleapiclient.discovery", "google.auth", "urllib3")


def get_console() -> Console:
    """Create the Rich console"""
    is_windows = platform.system().lower() == "windows"

    return Console(
        color_system="auto",
        highlight=True,
        soft_wrap=True,
        markup=True,
        emoji=not is_windows,
    )


console = get_console()
err_console = Console(stderr=True, soft_wrap=True)


def setup_logging(config: LogConfig | None = None, verbose: bool = False) -> None:
    """Install the root log handler

    Uses RichHandler on a terminal and a plain ``LOG_FORMAT`` handler
    otherwise. Calling it again replaces the handler it installed before.

    Args:
        config: Level and formats (default: ``LogConfig.from_env()``)
        verbose: Force DEBUG level
    """
    config = config or LogConfig.from_env()
    level = logging.DEBUG if verbose else getattr(logging, config.level, logging.INFO)

    handler: logging.Handler
    if sys.stderr.isatty():
        handler = RichHandler(console=err_console, rich_tracebacks=True, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s", datefmt=config.date_format))
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(config.format, datefmt=config.date_format))
    handler.set_name("geco")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "geco":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


# =============================================================================
# Output styles
# =============================================================================

SYMBOL_SUCCESS = "✓"
SYMBOL_ERROR = "✗"
SYMBOL_WARNING = "!"
SYMBOL_INFO = "•"


def print_success(message: str) -> None:
    console.print(f"[green]{SYMBOL_SUCCESS} {escape(message)}[/green]")


def print_error(message: str) -> None:
    console.print(f"[red]{SYMBOL_ERROR} {escape(message)}[/red]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]{SYMBOL_WARNING} {escape(message)}[/yellow]")


def print_info(message: str) -> None:
    console.print(f"[blue]{SYMBOL_INFO} {escape(message)}[/blue]")


def print_table(title: str, columns: list[str], rows: list[list[str]]) -> None:
    """Simple table, first column highlighted

    Args:
        title: Table title
        columns: Header labels
        rows: Cell values per row
    """
    table = Table(title=title, show_header=True, header_style="bold")
    for i, column in enumerate(columns):
        table.add_column(column, style="cyan" if i == 0 else None)
    for row in rows:
        table.add_row(*row)
    console.print(table)
