"""Logging configuration for the catalog process.

Two sinks are installed on the root logger:

* a rotating file that receives every record at the configured level, and
* a stderr handler that only carries records from the ``doccatalog``
  namespace (channel, store, cache and fetch diagnostics) at its own,
  usually higher, level. The console view writes to stdout, so log lines
  never interleave with the rendered catalog.
"""

from __future__ import annotations

import logging
import logging.handlers
import os
import sys
from pathlib import Path
from typing import TextIO

__all__ = ["CATALOG_NAMESPACE", "get_log_path", "setup_logging"]

CATALOG_NAMESPACE = "doccatalog"
LOG_FILE_NAME = "doccatalog.log"

_DEFAULT_LOG_DIR = Path.home() / ".doccatalog" / "logs"
_FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
_CONSOLE_FORMAT = "%(levelname)s [%(component)s] %(message)s"
# Third-party loggers never log below these levels, whatever the root level.
_LIBRARY_FLOORS: dict[str, int] = {
    "asyncio": logging.WARNING,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "websockets": logging.INFO,
}


_LOG_PATH: Path | None = None


class _CatalogConsoleFilter(logging.Filter):
    """Passes ``doccatalog.*`` records and tags them with a short component name."""

    def __init__(self) -> None:
        super().__init__(CATALOG_NAMESPACE)

    def filter(self, record: logging.LogRecord) -> bool:
        if not super().filter(record):
            return False
        record.component = record.name.removeprefix(f"{CATALOG_NAMESPACE}.")
        return True


def setup_logging(
    level: int = logging.INFO,
    *,
    log_dir: Path | str | None = None,
    console_level: int | None = logging.WARNING,
    console_stream: TextIO | None = None,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Install the file and console sinks and return the log file path.

    Args:
        level: Root level; the file receives every record at or above it.
        log_dir: Directory for the log file. Defaults to
            ``DOCCATALOG_LOG_DIR`` or ``~/.doccatalog/logs``.
        console_level: Minimum level for catalog records on the console;
            ``None`` disables the console sink.
        console_stream: Console target, stderr by default.
        max_bytes: Rotation threshold of the log file.
        backup_count: Rotated files to keep.
        force: Reconfigure even when logging was already set up.
    """

    global _LOG_PATH
    if _LOG_PATH is not None and not force:
        return _LOG_PATH

    target_dir = Path(log_dir or os.environ.get("DOCCATALOG_LOG_DIR") or _DEFAULT_LOG_DIR).expanduser()
    target_dir.mkdir(parents=True, exist_ok=True)
    log_path = target_dir / LOG_FILE_NAME

    file_handler = logging.handlers.RotatingFileHandler(
        log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(_FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    handlers: list[logging.Handler] = [file_handler]

    if console_level is not None:
        console_handler = logging.StreamHandler(console_stream or sys.stderr)
        console_handler.setLevel(max(level, console_level))
        console_handler.addFilter(_CatalogConsoleFilter())
        console_handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
        handlers.append(console_handler)

    logging.basicConfig(level=level, handlers=handlers, force=True)
    logging.captureWarnings(True)
    for name, floor in _LIBRARY_FLOORS.items():
        logging.getLogger(name).setLevel(max(level, floor))

    _LOG_PATH = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging`."""

    return _LOG_PATH
