"""
Logging setup for gitcloner.

Every module logs through ``logging.getLogger(__name__)``; this module
attaches the handlers once per run:

- main log: every record, rotated by size with a timestamp suffix
- error log: ERROR and FATAL records only
- terminal: stderr, filtered by the configured verbosity
- system log: FATAL records only, when requested and a syslog socket exists

Records are written as ``[timestamp] [LEVEL] [file.py:line] message``.
"""

import logging
import logging.handlers
import os
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional

import click

from .exit_codes import FatalInitError

PACKAGE_LOGGER = "gitcloner"

SUCCESS_LEVEL = 25
logging.addLevelName(SUCCESS_LEVEL, "SUCCESS")

logger = logging.getLogger(__name__)


class LogLevel(Enum):
    """
    Closed set of log levels.

    ``rank`` is the verbosity at which a level reaches the terminal; lower is
    more severe. SUCCESS shares INFO's rank.
    """
    FATAL = (0, logging.CRITICAL)
    ERROR = (1, logging.ERROR)
    WARNING = (2, logging.WARNING)
    INFO = (3, logging.INFO)
    SUCCESS = (3, SUCCESS_LEVEL)
    DEBUG = (4, logging.DEBUG)

    def __init__(self, rank: int, stdlib_level: int):
        self.rank = rank
        self.stdlib_level = stdlib_level

    @classmethod
    def from_stdlib(cls, levelno: int) -> 'LogLevel':
        """Nearest level at or below a stdlib level number."""
        for level in sorted(cls, key=lambda lv: lv.stdlib_level, reverse=True):
            if levelno >= level.stdlib_level:
                return level
        return cls.DEBUG


_LEVEL_STYLES = {
    LogLevel.FATAL: {"fg": "red", "bold": True},
    LogLevel.ERROR: {"fg": "red"},
    LogLevel.WARNING: {"fg": "yellow"},
    LogLevel.INFO: {"fg": "blue"},
    LogLevel.SUCCESS: {"fg": "green"},
    LogLevel.DEBUG: {"fg": "cyan"},
}

_VERBOSITY_DESCRIPTIONS = {
    0: "FATAL only (quiet)",
    1: "ERROR and above",
    2: "WARNING and above",
    3: "INFO and above (normal)",
    4: "DEBUG and above (verbose)",
}

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(filename)s:%(lineno)d] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def verbosity_description(verbosity: int) -> str:
    """Human-readable description of a verbosity level."""
    return _VERBOSITY_DESCRIPTIONS.get(verbosity, f"Unknown ({verbosity})")


def log(level: LogLevel, message: str, *args) -> None:
    """Log ``message`` at ``level`` on the package logger."""
    logging.getLogger(PACKAGE_LOGGER).log(level.stdlib_level, message, *args, stacklevel=2)


class RecordFormatter(logging.Formatter):
    """Formatter that prints FATAL instead of CRITICAL without touching the record."""

    def format(self, record: logging.LogRecord) -> str:
        display = LogLevel.from_stdlib(record.levelno).name
        if display != record.levelname:
            record = logging.makeLogRecord(record.__dict__)
            record.levelname = display
        return super().format(record)


class VerbosityFilter(logging.Filter):
    """Pass records whose rank is within the verbosity; FATAL/ERROR always pass."""

    def __init__(self, verbosity: int):
        super().__init__()
        self.verbosity = verbosity

    def filter(self, record: logging.LogRecord) -> bool:
        rank = LogLevel.from_stdlib(record.levelno).rank
        return rank <= LogLevel.ERROR.rank or rank <= self.verbosity


class ConsoleHandler(logging.Handler):
    """Write ``[LEVEL] message`` lines to stderr, coloured when it is a terminal."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = LogLevel.from_stdlib(record.levelno)
            tag = click.style(f"[{level.name}]", **_LEVEL_STYLES[level])
            click.echo(f"{tag} {record.getMessage()}", err=True)
        except Exception:
            self.handleError(record)


class TimestampRotatingFileHandler(logging.FileHandler):
    """
    File handler that rotates by size, renaming to ``<file>.<YYYYmmdd_HHMMSS>``.

    Before each write the file size is compared to ``max_bytes``; at or above
    it the file is renamed aside and a fresh one opened. Rotated files beyond
    ``max_files`` (oldest first, by modification time) are deleted from the
    directory. Rename and delete failures are logged as warnings.
    """

    def __init__(self, filename, max_bytes: int, max_files: int, encoding: str = 'utf-8'):
        self.max_bytes = max_bytes
        self.max_files = max_files
        self._in_rollover = False
        super().__init__(filename, mode='a', encoding=encoding)

    def should_rollover(self) -> bool:
        if self.max_bytes <= 0:
            return False
        try:
            return os.path.getsize(self.baseFilename) >= self.max_bytes
        except OSError:
            return False

    def rotated_name(self) -> str:
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        candidate = f"{self.baseFilename}.{stamp}"
        counter = 1
        while os.path.exists(candidate):
            candidate = f"{self.baseFilename}.{stamp}_{counter}"
            counter += 1
        return candidate

    def do_rollover(self) -> Optional[str]:
        """Rename the current file aside; return the new name, or None on failure."""
        if self._in_rollover:
            return None
        self._in_rollover = True
        try:
            if self.stream:
                self.stream.close()
                self.stream = None

            target = self.rotated_name()
            try:
                os.rename(self.baseFilename, target)
            except OSError as e:
                logger.warning(f"Could not rotate log file {self.baseFilename}: {e}")
                return None

            logger.info(f"Rotated log file: {self.baseFilename} -> {target}")
            prune_rotated_logs(Path(self.baseFilename).parent, self.max_files)
            return target
        finally:
            self._in_rollover = False

    def emit(self, record: logging.LogRecord) -> None:
        if not self._in_rollover and self.should_rollover():
            self.do_rollover()
        super().emit(record)


def prune_rotated_logs(log_dir: Path, max_files: int) -> List[Path]:
    """
    Delete rotated log files (``*.log.*``) beyond ``max_files``, oldest first.

    Returns:
        Paths that were removed
    """
    try:
        rotated = [p for p in Path(log_dir).glob("*.log.*") if p.is_file()]
        rotated.sort(key=lambda p: p.stat().st_mtime, reverse=True)
    except OSError as e:
        logger.warning(f"Could not list rotated logs in {log_dir}: {e}")
        return []

    removed = []
    for path in rotated[max_files:]:
        try:
            path.unlink()
            removed.append(path)
            logger.debug(f"Removed old log file: {path}")
        except OSError as e:
            logger.warning(f"Could not remove old log file {path}: {e}")
    return removed


# Unix sockets of the local syslog daemon (Linux, macOS)
SYSLOG_ADDRESSES = ("/dev/log", "/var/run/syslog")


def syslog_address() -> Optional[str]:
    """First syslog socket present on this machine, or None."""
    for address in SYSLOG_ADDRESSES:
        if os.path.exists(address):
            return address
    return None


def make_syslog_handler(ident: str = "gitcloner",
                        address: Optional[str] = None) -> Optional[logging.Handler]:
    """
    Handler that forwards FATAL records to the system log.

    Returns None when no syslog socket is available.
    """
    address = address or syslog_address()
    if address is None:
        return None
    try:
        handler = logging.handlers.SysLogHandler(address=address)
    except OSError as e:
        logger.debug(f"System log unavailable at {address}: {e}")
        return None
    handler.ident = f"{ident}: "
    handler.setLevel(logging.CRITICAL)
    handler.setFormatter(RecordFormatter("[%(levelname)s] %(message)s"))
    return handler


@dataclass
class LogSession:
    """Handlers installed for one run, plus the files they write to."""
    log_dir: Path
    log_file: Path
    error_log_file: Path
    verbosity: int
    handlers: List[logging.Handler] = field(default_factory=list)
    previous_propagate: bool = True

    def close(self) -> None:
        """Detach and close every handler installed by setup_logging()."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        for handler in self.handlers:
            package_logger.removeHandler(handler)
            handler.close()
        self.handlers = []
        package_logger.propagate = self.previous_propagate


def setup_logging(log_dir: Path, verbosity: int, max_log_size_mb: int = 10,
                  max_log_files: int = 30, script_name: str = "gitcloner",
                  today: Optional[datetime] = None, syslog: bool = False) -> LogSession:
    """
    Create the log directory and files and attach all handlers.

    Args:
        log_dir: Directory for the main and error logs
        verbosity: Terminal verbosity (0-4)
        max_log_size_mb: Rotation threshold in MiB
        max_log_files: Rotated files to keep
        script_name: Prefix for log file names
        today: Date used in file names (default: now)
        syslog: Also forward FATAL records to the system log when one is available

    Returns:
        LogSession describing the installed handlers

    Raises:
        FatalInitError: The directory or either file cannot be created
    """
    today = today or datetime.now()
    log_dir = Path(log_dir).expanduser()
    log_file = log_dir / f"{script_name}_{today:%Y%m%d}.log"
    error_log_file = log_dir / f"{script_name}_errors_{today:%Y%m%d}.log"
    max_bytes = max_log_size_mb * 1024 * 1024

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        main_handler = TimestampRotatingFileHandler(log_file, max_bytes, max_log_files)
    except OSError as e:
        raise FatalInitError(f"Failed to initialize logging in {log_dir}: {e}") from e

    try:
        error_handler = TimestampRotatingFileHandler(error_log_file, max_bytes, max_log_files)
    except OSError as e:
        main_handler.close()
        raise FatalInitError(f"Failed to initialize logging in {log_dir}: {e}") from e

    formatter = RecordFormatter(LOG_FORMAT, datefmt=DATE_FORMAT)
    main_handler.setFormatter(formatter)
    main_handler.setLevel(logging.DEBUG)
    error_handler.setFormatter(formatter)
    error_handler.setLevel(logging.ERROR)

    console_handler = ConsoleHandler()
    console_handler.setLevel(logging.DEBUG)
    console_handler.addFilter(VerbosityFilter(verbosity))

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    session = LogSession(
        log_dir=log_dir,
        log_file=log_file,
        error_log_file=error_log_file,
        verbosity=verbosity,
        previous_propagate=package_logger.propagate,
    )
    package_logger.setLevel(logging.DEBUG)
    package_logger.propagate = False
    for handler in (main_handler, error_handler, console_handler):
        package_logger.addHandler(handler)
        session.handlers.append(handler)

    # Oversized files left by an earlier run rotate before the first record
    for handler in (main_handler, error_handler):
        if handler.should_rollover():
            handler.do_rollover()
    prune_rotated_logs(log_dir, max_log_files)

    if syslog:
        syslog_handler = make_syslog_handler(script_name)
        if syslog_handler is not None:
            package_logger.addHandler(syslog_handler)
            session.handlers.append(syslog_handler)

    logger.info("Logging initialized")
    logger.debug(f"Log verbosity level set to: {verbosity} ({verbosity_description(verbosity)})")
    logger.debug(f"Main log: {log_file}")
    logger.debug(f"Error log: {error_log_file}")
    return session
