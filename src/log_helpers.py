import logging
import os
import sys
import time
from typing import Any, TextIO

_start_time = time.perf_counter()
_LOG_LEVEL_ENV = "LEXICON_LOG_LEVEL"
# Verbosity 0..3 mapped onto the stdlib levels used by lexicon_store loggers.
_VERBOSITY_TO_LEVEL = {0: logging.ERROR, 1: logging.INFO, 2: logging.INFO, 3: logging.DEBUG}


def _read_log_level() -> int:
    raw = os.getenv(_LOG_LEVEL_ENV, "1").strip().lower()
    if raw in {"debug", "trace"}:
        return 3
    if raw in {"quiet", "off", "silent"}:
        return 0
    try:
        return min(3, max(0, int(raw)))
    except ValueError:
        return 1


_LOG_LEVEL = _read_log_level()


def timestamp_prefix() -> str:
    return f"+[{time.perf_counter() - _start_time:7.2f}]"


class TimestampFormatter(logging.Formatter):
    """Formats library log records with the same elapsed-time prefix as ``log``."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        return f"{timestamp_prefix()} [{record.name}] {message}"


def configure_logging(stream: TextIO | None = None) -> logging.Handler:
    """Route ``lexicon_store`` loggers to ``stream`` at the configured verbosity."""
    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(TimestampFormatter("%(levelname)s %(message)s"))
    package_logger = logging.getLogger("lexicon_store")
    package_logger.setLevel(_VERBOSITY_TO_LEVEL[_LOG_LEVEL])
    package_logger.addHandler(handler)
    return handler


def log_verbose(level: int, *objects: Any, sep: str = " ", file: TextIO | None = None) -> None:
    """Print a timestamped line when LEXICON_LOG_LEVEL is at least ``level``."""
    if _LOG_LEVEL < level:
        return
    message = sep.join(str(obj) for obj in objects)
    print(f"{timestamp_prefix()} {message}", file=file or sys.stdout)


def log(*objects: Any, sep: str = " ", file: TextIO | None = None) -> None:
    log_verbose(1, *objects, sep=sep, file=file)
