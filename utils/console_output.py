# ABOUTME: Rich-based console helpers shared by the CLI and core modules
# ABOUTME: Provides print_* helpers, section headers, and optional file logging

import logging

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger("access2siege")


class ConsoleOutput:
    """Thin wrapper around a rich Console that mirrors messages into logging."""

    def __init__(self, console: Console | None = None):
        self.console = console or Console(highlight=False)
        self.file_handler: logging.Handler | None = None

    def setup_console_logging(self, level: str = "WARNING") -> None:
        """Route library log records to the terminal through rich."""
        root = logging.getLogger()
        if not any(isinstance(h, RichHandler) for h in root.handlers):
            handler = RichHandler(console=self.console, show_path=False, markup=False)
            handler.setLevel(getattr(logging, level.upper(), logging.WARNING))
            # print_* output is already on the console; only the file log gets a copy
            handler.addFilter(lambda record: record.name != logger.name)
            root.addHandler(handler)
        root.setLevel(logging.DEBUG)

    def setup_file_logging(self, log_file_path: str, level: str = "INFO") -> None:
        """Attach a file handler so warnings and skipped lines survive the run.

        Args:
            log_file_path: Path of the log file (appended to)
            level: Logging level name for the file output
        """
        if self.file_handler is not None:
            logging.getLogger().removeHandler(self.file_handler)
            self.file_handler.close()

        handler = logging.FileHandler(log_file_path, encoding="utf-8")
        handler.setLevel(getattr(logging, level.upper(), logging.INFO))
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

        root = logging.getLogger()
        root.addHandler(handler)
        root.setLevel(logging.DEBUG)
        self.file_handler = handler

    def close(self) -> None:
        if self.file_handler is not None:
            logging.getLogger().removeHandler(self.file_handler)
            self.file_handler.close()
            self.file_handler = None

    def _emit(self, style: str, prefix: str, message: str, indent: int, level: int) -> None:
        pad = "  " * indent
        self.console.print(f"{pad}[{style}]{prefix}[/{style}]{message}" if prefix else f"{pad}{message}")
        if message:
            logger.log(level, message)

    def info(self, message: str, indent: int = 0) -> None:
        self._emit("cyan", "", message, indent, logging.INFO)

    def success(self, message: str, indent: int = 0) -> None:
        self._emit("green", "OK ", message, indent, logging.INFO)

    def warning(self, message: str, indent: int = 0) -> None:
        self._emit("yellow", "Warning: ", message, indent, logging.WARNING)

    def error(self, message: str, indent: int = 0) -> None:
        self._emit("bold red", "Error: ", message, indent, logging.ERROR)

    def section(self, title: str) -> None:
        self.console.rule(f"[bold]{title}[/bold]")
        logger.info(f"== {title} ==")


# Global console instance
console = ConsoleOutput()


def print_info(message: str, indent: int = 0) -> None:
    console.info(message, indent)


def print_success(message: str, indent: int = 0) -> None:
    console.success(message, indent)


def print_warning(message: str, indent: int = 0) -> None:
    console.warning(message, indent)


def print_error(message: str, indent: int = 0) -> None:
    console.error(message, indent)


def print_section(title: str) -> None:
    console.section(title)
