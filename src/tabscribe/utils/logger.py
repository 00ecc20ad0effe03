import os
import sys
from contextlib import contextmanager
from multiprocessing import parent_process
from pathlib import Path
from typing import Any, TextIO

from rich.console import Console
from rich.markup import escape

from tabscribe.utils.config_dir import get_config_dir

# stdout carries protocol traffic, so logs go to a session file (or stderr)
LOG_FILE_NAME = "tabscribe_session.log"

LOG_FILE: Path | None = None
log_file_handle: TextIO | None = None

# Extraction workers re-import this module; only the main process owns the log file
if parent_process() is None:
    try:
        LOG_FILE = get_config_dir() / LOG_FILE_NAME
        log_file_handle = open(LOG_FILE, "w", encoding="utf-8")
    except OSError as e:
        print(f"Error opening tabscribe log file: {e}", file=sys.stderr)
        LOG_FILE = None
        log_file_handle = None


class Logger:
    def __init__(self, enabled: bool = True, file: TextIO | None = log_file_handle):
        self.enabled = enabled
        self._console = Console(file=file or sys.stderr)
        self._null_console = Console(file=open(os.devnull, "w"))

    def print(self, *args, **kwargs):
        """Print to console if enabled."""
        if self.enabled:
            self._console.print(*args, **kwargs)

    def debug(self, message: Any, *args, **kwargs):
        if self.enabled:
            self._console.print(f"[dim]{escape(str(message))}[/dim]", *args, **kwargs)

    def info(self, message: Any, *args, **kwargs):
        if self.enabled:
            self._console.print(escape(str(message)), *args, **kwargs)

    def warning(self, message: Any, *args, **kwargs):
        if self.enabled:
            self._console.print(f"[yellow]{escape(str(message))}[/yellow]", *args, **kwargs)

    def error(self, message: Any, *args, exc_info: bool = False, **kwargs):
        """Print error-level messages, optionally followed by the active traceback."""
        if self.enabled:
            self._console.print(f"[red]{escape(str(message))}[/red]", *args, **kwargs)
            if exc_info:
                self._console.print_exception()

    def success(self, message: Any, *args, **kwargs):
        if self.enabled:
            self._console.print(f"[green]{escape(str(message))}[/green]", *args, **kwargs)

    @contextmanager
    def suppress(self):
        """Temporarily suppress all output."""
        old_enabled = self.enabled
        self.enabled = False
        try:
            yield
        finally:
            self.enabled = old_enabled

    @property
    def console(self) -> Console:
        """Get the underlying Rich console."""
        return self._console if self.enabled else self._null_console

    def get_log_file_path(self) -> Path | None:
        """Return the path to the log file, if configured."""
        if log_file_handle:
            return LOG_FILE
        return None


logger = Logger()
