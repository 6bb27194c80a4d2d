"""
Centralized logging configuration for the news feed simulator.

Uses rotating file handler with logs stored in logs/ directory.
Includes colored console output for debug mode.
"""
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional


_VERBOSE: bool = False
# Base directory for logs. Defaults to the project root; setup_logging() may
# be pointed elsewhere (tests use a tmp_path).
_BASE_DIR: Path = Path(__file__).parent.parent.parent

LOG_FORMAT = '%(asctime)s - %(name)-24s - %(levelname)-8s - %(message)s'


class ColoredFormatter(logging.Formatter):
    """Formatter that adds colors to console output."""

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',       # Cyan
        'INFO': '\033[32m',        # Green
        'WARNING': '\033[33m',     # Yellow
        'ERROR': '\033[31m',       # Red
        'CRITICAL': '\033[35m',    # Magenta
    }
    DETAIL_COLOR = '\033[38;5;135m'   # Purple for detail fetch diagnostics
    RESET = '\033[0m'
    BOLD = '\033[1m'

    def format(self, record):
        original_levelname = record.levelname

        msg_text = str(record.msg)
        if '[DETAIL]' in msg_text and record.levelno < logging.WARNING:
            color = self.DETAIL_COLOR
        else:
            color = self.COLORS.get(record.levelname)

        if color is None:
            return super().format(record)

        record.levelname = f"{self.BOLD}{color}{record.levelname}{self.RESET}"
        try:
            message = super().format(record)
        finally:
            record.levelname = original_levelname
        return f"{color}{message}{self.RESET}"


class SuppressingStreamHandler(logging.StreamHandler):
    """Stream handler that suppresses consecutive duplicate sources.

    Repeated DEBUG/INFO lines from the same logger/level are collapsed into a
    single summary line like "[N Suppressed: CHECK LOG]" while file logs
    remain unaffected. The feed ticks every couple of seconds, so without
    this the console is mostly "[FEED] Ingested item" lines.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._last_name: Optional[str] = None
        self._last_level: Optional[int] = None
        self._suppress_count: int = 0
        self._last_record: Optional[logging.LogRecord] = None

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._emit_with_suppression(record)
        except Exception:
            self.handleError(record)

    def _remember(self, record: Optional[logging.LogRecord]) -> None:
        self._last_name = record.name if record is not None else None
        self._last_level = record.levelno if record is not None else None
        self._suppress_count = 0
        self._last_record = record

    def _emit_with_suppression(self, record: logging.LogRecord) -> None:
        if record.levelno >= logging.WARNING:
            self._flush_summary()
            self._emit_record(record)
            self._remember(None)
            return

        if self._last_name is None:
            self._emit_record(record)
            self._remember(record)
            return

        if record.name == self._last_name and record.levelno == self._last_level:
            self._suppress_count += 1
            return

        self._flush_summary()
        self._emit_record(record)
        self._remember(record)

    def _emit_record(self, record: logging.LogRecord) -> None:
        """Emit a single record with a Unicode-safe fallback for narrow consoles."""
        try:
            msg = self.format(record)
            stream = self.stream
            if stream is None:
                return
            text = msg + self.terminator
            try:
                stream.write(text)
            except UnicodeEncodeError:
                encoding = getattr(stream, "encoding", None) or "ascii"
                stream.write(text.encode(encoding, errors="replace").decode(encoding, errors="replace"))
            self.flush()
        except Exception:
            self.handleError(record)

    def _flush_summary(self) -> None:
        if self._suppress_count <= 0 or self._last_record is None:
            self._suppress_count = 0
            return

        last = self._last_record
        summary = logging.LogRecord(
            last.name,
            last.levelno,
            last.pathname,
            last.lineno,
            f"[{self._suppress_count} Suppressed: CHECK LOG]",
            args=None,
            exc_info=None,
        )
        summary.created = last.created
        summary.msecs = last.msecs
        summary.relativeCreated = last.relativeCreated
        summary.thread = last.thread
        summary.threadName = last.threadName
        self._emit_record(summary)
        self._suppress_count = 0

    def close(self) -> None:
        try:
            self._flush_summary()
        finally:
            super().close()


def get_log_dir() -> Path:
    """Return the directory used for log files."""

    return _BASE_DIR / "logs"


def setup_logging(debug: bool = False, verbose: bool = False,
                  base_dir: Optional[Path] = None) -> None:
    """
    Configure application logging with file rotation.

    Args:
        debug: If True, set log level to DEBUG and enable console output.
        verbose: When True, enables per-item ingestion and per-request debug
            logs. Verbose mode also implies debug-level logging.
        base_dir: Directory that receives the logs/ folder. Defaults to the
            project root.
    """
    global _VERBOSE, _BASE_DIR

    debug_enabled = debug or verbose
    if base_dir is not None:
        _BASE_DIR = Path(base_dir)

    log_dir = get_log_dir()
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "newsfeed.log"

    level = logging.DEBUG if debug_enabled else logging.INFO

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    # File handler with rotation (1MB max, keep 5 backups)
    file_handler = RotatingFileHandler(
        log_file,
        maxBytes=1 * 1024 * 1024,
        backupCount=5,
        encoding='utf-8'
    )
    file_handler.setFormatter(formatter)
    file_handler.setLevel(level)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(file_handler)

    if debug_enabled:
        console_handler = SuppressingStreamHandler(sys.stdout)
        if sys.stdout.isatty():
            console_handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        else:
            console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S'))
        console_handler.setLevel(level)
        root_logger.addHandler(console_handler)

    # asyncio is pulled in by Qt tooling on some platforms; keep it quiet
    # unless verbose logging was asked for.
    logging.getLogger("asyncio").setLevel(logging.DEBUG if verbose else logging.INFO)

    _VERBOSE = bool(verbose)

    root_logger.info("=" * 60)
    root_logger.info(
        "News feed logging initialized (debug=%s, verbose=%s)",
        debug_enabled,
        _VERBOSE,
    )
    root_logger.info("=" * 60)


_SHORT_NAME_OVERRIDES = {
    "engine.feed_store": "engine.store",
    "sources.feed_source": "sources.feed",
    "core.threading.manager": "threading.manager",
    "ui.main_window": "ui.window",
}


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance with optional short-name overrides for noisy modules."""
    actual = _SHORT_NAME_OVERRIDES.get(name, name)
    return logging.getLogger(actual)


def is_verbose_logging() -> bool:
    """Return True when verbose debug logging is enabled globally."""

    return _VERBOSE
