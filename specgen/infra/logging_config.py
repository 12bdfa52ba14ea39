"""
Logging configuration module.

Each entry point (API server, CLI) writes its own daily log file:
<log_dir>/specgen_<component>_YYYYMMDD_<START_HHMMSS>.log

Records emitted while a generation request runs carry that request's
label, so the fiction, image and persistence lines of one request can be
grepped together.
"""

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime
from pathlib import Path
from typing import Iterator, Optional

LOGGER_NAME = "specgen"
NO_GENERATION = "-"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(generation)s] %(message)s"

# Process start time is captured once and reused for all daily logs
_PROCESS_START_TIME: Optional[str] = None

_current_generation: ContextVar[str] = ContextVar("specgen_generation", default=NO_GENERATION)


@contextmanager
def generation_context(label: str) -> Iterator[str]:
    """Tag log records emitted inside the block with a generation label."""
    token = _current_generation.set(label)
    try:
        yield label
    finally:
        _current_generation.reset(token)


def current_generation() -> str:
    return _current_generation.get()


class GenerationContextFilter(logging.Filter):
    """Adds the active generation label as record.generation."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.generation = _current_generation.get()
        return True


class DailyRotatingFileHandler(logging.FileHandler):
    """
    Daily rotating file handler for one entry point.

    START_HHMMSS is fixed at process start, only YYYYMMDD changes, so a
    restart on the same day opens a new file instead of appending.
    """

    def __init__(self, log_dir: str = "logs", component: str = "app", encoding: str = "utf-8"):
        global _PROCESS_START_TIME

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.component = component

        if _PROCESS_START_TIME is None:
            _PROCESS_START_TIME = datetime.now().strftime("%H%M%S")

        self._start_hhmmss = _PROCESS_START_TIME
        self._current_date: Optional[str] = None

        super().__init__(self._get_current_log_path(), mode='a', encoding=encoding)
        self._current_date = datetime.now().strftime("%Y%m%d")

    def _get_current_log_path(self) -> str:
        date_str = datetime.now().strftime("%Y%m%d")
        filename = f"{LOGGER_NAME}_{self.component}_{date_str}_{self._start_hhmmss}.log"
        return str(self.log_dir / filename)

    def emit(self, record: logging.LogRecord) -> None:
        """Emit a record, switching files when the calendar day changes."""
        current_date = datetime.now().strftime("%Y%m%d")

        if self._current_date != current_date:
            self.close()
            self.baseFilename = self._get_current_log_path()
            self._current_date = current_date
            self.stream = self._open()

        super().emit(record)


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[str] = "logs",
    component: str = "app",
) -> logging.Logger:
    """
    Configure the "specgen" logger and return it.

    Module loggers (logging.getLogger(__name__)) are children of this
    logger and share its handlers. Calling this again replaces the
    handlers rather than adding to them.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL; anything else is INFO
        log_dir: Directory for daily log files. None or "" logs to the console only.
        component: Entry point name used in the log file name ("api", "cli")
    """
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(numeric_level)
    logger.propagate = False

    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT)
    context_filter = GenerationContextFilter()

    handlers = [logging.StreamHandler()]
    if log_dir:
        handlers.append(DailyRotatingFileHandler(log_dir=log_dir, component=component))

    for handler in handlers:
        handler.setLevel(numeric_level)
        handler.setFormatter(formatter)
        handler.addFilter(context_filter)
        logger.addHandler(handler)

    if log_dir:
        logger.info(f"[Logging] {component} started - level: {log_level}, file: {handlers[-1].baseFilename}")
    else:
        logger.info(f"[Logging] {component} started - level: {log_level}, console only")

    return logger
