"""
Status output for Domain Watcher.

Every status change is printed to the terminal as a timestamped line whose
short message is colored by severity. When logging is enabled the same
record is appended to a log file.
"""

import logging
from datetime import datetime
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.text import Text

DEFAULT_LOG_FILE = Path("domain_watcher.log")
TIMESTAMP_FORMAT = "[ %d.%m.%Y %H:%M:%S ]"

LOGGER_NAME = "domain_watcher"


class MessageType(Enum):
    SUCCESS = "bold green"
    INFO = "bold"
    WARNING = "bold yellow"
    ERROR = "bold red"


_LOG_LEVELS = {
    MessageType.SUCCESS: logging.INFO,
    MessageType.INFO: logging.INFO,
    MessageType.WARNING: logging.WARNING,
    MessageType.ERROR: logging.ERROR,
}


def get_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


class _TimestampFormatter(logging.Formatter):
    """Formats records as "<timestamp> <message>"."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime(TIMESTAMP_FORMAT)
        return f"{stamp} {record.getMessage()}"


class StatusReporter:
    """
    Prints status lines and, optionally, appends them to a log file.

    The file handler is opened once and released by close(); use the
    reporter as a context manager so that happens deterministically.

    Usage:
        with StatusReporter(log_file=Path("domain_watcher.log")) as reporter:
            reporter.info("Registered", "Still taken.", log="Still taken.")
    """

    def __init__(
        self,
        log_file: Path | None = None,
        console: Console | None = None,
    ) -> None:
        self.console = console or Console(highlight=False)
        self._handler: logging.FileHandler | None = None
        self._logger = logging.getLogger(LOGGER_NAME)
        self._saved_level = self._logger.level
        self._saved_propagate = self._logger.propagate

        if log_file is not None:
            self._handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
            self._handler.setFormatter(_TimestampFormatter())
            self._logger.addHandler(self._handler)
            self._logger.setLevel(logging.INFO)
            # Records stay in our file and are not echoed by the root logger
            self._logger.propagate = False

    def __enter__(self) -> "StatusReporter":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        """Detach and close the log file handler and restore the logger."""
        if self._handler is not None:
            self._logger.removeHandler(self._handler)
            self._handler.close()
            self._handler = None
            self._logger.setLevel(self._saved_level)
            self._logger.propagate = self._saved_propagate

    def print_message(
        self,
        short_message: str,
        long_message: str = "",
        message_type: MessageType = MessageType.INFO,
    ) -> None:
        """Print one timestamped status line."""
        line = Text(f"{get_timestamp()} ")
        line.append(short_message, style=message_type.value)
        line.append(f" {long_message}")
        self.console.print(line, soft_wrap=True)

    def log_message(self, message: str, message_type: MessageType = MessageType.INFO) -> None:
        """Append a record to the log file, if logging is enabled."""
        if self._handler is not None:
            self._logger.log(_LOG_LEVELS[message_type], message)

    def report(
        self,
        short_message: str,
        long_message: str = "",
        message_type: MessageType = MessageType.INFO,
        log: str | None = None,
    ) -> None:
        """Print a status line and log `log` (if given) to the log file."""
        self.print_message(short_message, long_message, message_type)
        if log is not None:
            self.log_message(log, message_type)

    def success(self, short_message: str, long_message: str = "", log: str | None = None) -> None:
        self.report(short_message, long_message, MessageType.SUCCESS, log)

    def info(self, short_message: str, long_message: str = "", log: str | None = None) -> None:
        self.report(short_message, long_message, MessageType.INFO, log)

    def warning(self, short_message: str, long_message: str = "", log: str | None = None) -> None:
        self.report(short_message, long_message, MessageType.WARNING, log)

    def error(self, short_message: str, long_message: str = "", log: str | None = None) -> None:
        self.report(short_message, long_message, MessageType.ERROR, log)
