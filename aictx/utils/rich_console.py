from rich.console import Console
from rich.table import Table
from rich.syntax import Syntax
from rich.panel import Panel
from typing import Any
from rich.logging import RichHandler
import logging
import os


# Singleton Console instance
def get_console() -> Console:
    if not hasattr(get_console, "_console"):
        get_console._console = Console()
    return get_console._console


def print_panel(content: str, title: str | None = None, style: str = "bold blue", border_style: str | None = None):
    """Print a styled panel with optional title using Rich library.

    Args:
        content (str): The text content to display in the panel.
        title (str | None, optional): Title of the panel. Defaults to None.
        style (str, optional): Rich styling for the panel's content. Defaults to "bold blue".
        border_style (str | None, optional): Styling for the panel's border. Defaults to None.
    """
    console = get_console()
    style = style or "bold blue"
    border_style = border_style or style

    panel = Panel(content, title=title, style=style, border_style=border_style)
    console.print(panel)


def print_table(headers: list[str], rows: list[list[Any]], title: str | None = None):
    """Print a formatted table using Rich library.

    Args:
        headers (list[str]): Column headers for the table.
        rows (list[list[Any]]): Data rows to display in the table.
        title (str | None, optional): Title of the table. Defaults to None.
    """
    console = get_console()
    table = Table(title=title)
    for header in headers:
        table.add_column(header)
    for row in rows:
        table.add_row(*[str(cell) for cell in row])
    console.print(table)


def print_syntax(code: str, language: str = "diff", title: str | None = None):
    """Print highlighted source (a unified diff by default) using Rich library.

    Args:
        code (str): Text to highlight.
        language (str, optional): Lexer name. Defaults to "diff".
        title (str | None, optional): Title for the syntax block. Defaults to None.
    """
    console = get_console()
    syntax = Syntax(code, language, theme="monokai", line_numbers=False)
    if title:
        console.print(Panel(syntax, title=title))
    else:
        console.print(syntax)


LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


class RichConsoleLogger(logging.Logger):
    """Logger for the lines a user reads while the CLI runs."""

    def __init__(self, name: str, level: str | None = None):
        super().__init__(name)

        log_level_str = (level or os.getenv("AICTX_LOG_LEVEL", "INFO")).upper()
        if os.getenv("AICTX_DEBUG", "").lower() in ["true", "1", "yes"]:
            log_level_str = "DEBUG"

        self.log_level_str = log_level_str if log_level_str in LOG_LEVELS else "INFO"
        self.log_level = LOG_LEVELS[self.log_level_str]
        self.setLevel(self.log_level)

        handler = RichHandler(
            console=get_console(),
            rich_tracebacks=True,
            show_time=False,
            show_path=False,
            level=self.log_level,
        )
        self.addHandler(handler)

    def set_level(self, level: str):
        """Change the level of this logger and its handlers."""
        self.log_level_str = level.upper() if level.upper() in LOG_LEVELS else "INFO"
        self.log_level = LOG_LEVELS[self.log_level_str]
        self.setLevel(self.log_level)
        for handler in self.handlers:
            handler.setLevel(self.log_level)

    def success(self, message: str, *args, **kwargs):
        """Log a success message.

        Standard logging has no success level, so this goes out at INFO with
        a check mark prefix.

        Args:
            message (str): Success message to display.
        """
        if args:
            message = message % args
        super().info(f"✅ {message}", **kwargs)


# Singleton logger instance
_console_logger = None


def get_console_logger() -> RichConsoleLogger:
    """Get a singleton instance of RichConsoleLogger with log level from environment variables.

    Environment variables:
        AICTX_LOG_LEVEL: Set the log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        AICTX_DEBUG: Force DEBUG level (true, 1, yes)

    Returns:
        RichConsoleLogger: Configured logger instance
    """
    global _console_logger
    if _console_logger is None:
        _console_logger = RichConsoleLogger("aictx")
    return _console_logger
