"""
Centralized logging configuration for the dataset tools.

Provides human-readable console output, a rotating JSON Lines file for
machine parsing, and a plain-text run log per invocation (the
``dataset_download_log.txt`` / ``data_validation_log.txt`` files the book
tells readers to check). All modules should use get_pipeline_logger()
instead of calling logging.basicConfig() directly.

Usage:
    from natsci_data.logging_config import get_pipeline_logger, run_log
    log = get_pipeline_logger(__name__)

    with run_log("dataset_download_log.txt", "Dataset Download Log"):
        log.info("Downloading ...")
"""

import json
import logging
import os
import platform
import sys
import time
import uuid
from contextlib import contextmanager
from datetime import datetime
from logging.handlers import RotatingFileHandler


PACKAGE_LOGGER = "natsci_data"

# Module-level run_id bound to every log entry via RunIdFilter.
_run_id = None


def get_run_id():
    """Return the current run_id, generating one if needed."""
    global _run_id
    if _run_id is None:
        _run_id = str(uuid.uuid4())[:8]
    return _run_id


def set_run_id(run_id=None):
    """Set (or regenerate) the run_id."""
    global _run_id
    _run_id = run_id or str(uuid.uuid4())[:8]
    return _run_id


class RunIdFilter(logging.Filter):
    """Inject run_id into every log record."""

    def filter(self, record):
        record.run_id = get_run_id()
        return True


class JsonFormatter(logging.Formatter):
    """Format log records as JSON Lines for machine parsing."""

    def format(self, record):
        entry = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S.") +
                         f"{int(record.msecs):03d}",
            "level": record.levelname,
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "run_id": getattr(record, "run_id", None),
            "message": record.getMessage(),
        }
        # Include structured extra fields if present.
        for key in ("step_name", "dataset", "attempt", "input_summary",
                    "output_summary", "timing_seconds", "warnings"):
            if hasattr(record, key):
                entry[key] = getattr(record, key)
        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Timestamped single-line format shared by the console and run logs."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s [%(levelname)s] %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


# Track whether logging has been configured to avoid duplicate handlers.
_configured = False


def _resolve_level(level, default=logging.INFO):
    if level is None:
        return default
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), default)


def setup_logging(console_level=None, file_level=logging.DEBUG, log_dir=None):
    """Configure the package logger with console and rotating file handlers.

    Call once at an entry point. Subsequent calls are no-ops until
    reset_logging() is called.

    Parameters
    ----------
    console_level : int or str, optional
        Console handler log level. Default: from LOG_LEVEL env var or INFO.
    file_level : int
        JSON Lines file handler log level. Default: DEBUG.
    log_dir : str, optional
        Directory for ``natsci_data.jsonl``. Default: ``./logs``.
    """
    global _configured

    if _configured:
        return

    if console_level is None:
        console_level = os.environ.get("LOG_LEVEL", "INFO")
    console_level = _resolve_level(console_level)

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter())
    console.addFilter(RunIdFilter())
    logger.addHandler(console)

    log_dir = log_dir or os.path.join(os.getcwd(), "logs")
    os.makedirs(log_dir, exist_ok=True)
    rotating = RotatingFileHandler(
        os.path.join(log_dir, "natsci_data.jsonl"),
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=3,
    )
    rotating.setLevel(file_level)
    rotating.setFormatter(JsonFormatter())
    rotating.addFilter(RunIdFilter())
    logger.addHandler(rotating)

    _configured = True


def reset_logging():
    """Reset all logging state, primarily for test isolation.

    Removes all handlers from the package logger so the next call to
    setup_logging() starts fresh.
    """
    global _configured, _run_id

    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in logger.handlers[:]:
        handler.close()
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)

    _configured = False
    _run_id = None


def get_pipeline_logger(name):
    """Get a logger for a package module.

    Loggers are children of the ``natsci_data`` logger, so handlers
    installed by setup_logging() and run_log() see their records. Handlers
    are not installed here; entry points call setup_logging().

    Parameters
    ----------
    name : str
        Logger name (typically ``__name__``).

    Returns
    -------
    logging.Logger
    """
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def _write_run_log_header(path, title):
    stamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    with open(path, "a", encoding="utf-8") as f:
        f.write(
            f"# Data Analysis in Natural Sciences - {title}\n"
            f"# Run on: {stamp}\n"
            f"# Python version: {platform.python_version()}\n"
            f"# Platform: {platform.system()} {platform.release()}\n\n"
        )


@contextmanager
def run_log(path, title, level=logging.INFO):
    """Append a plain-text, timestamped run log for one invocation.

    Writes a header block, attaches a FileHandler to the package logger for
    the duration of the ``with`` block, then detaches and closes it. Does
    nothing when *path* is None.

    Parameters
    ----------
    path : str or None
        Log file path (appended to, never truncated).
    title : str
        Header title, e.g. "Dataset Download Log".
    level : int or str
        Minimum level written to the run log.

    Yields
    ------
    logging.Handler or None
    """
    if path is None:
        yield None
        return

    parent = os.path.dirname(os.path.abspath(path))
    os.makedirs(parent, exist_ok=True)
    _write_run_log_header(path, title)

    handler = logging.FileHandler(path, mode="a", encoding="utf-8")
    handler.setLevel(_resolve_level(level))
    handler.setFormatter(ConsoleFormatter())
    handler.addFilter(RunIdFilter())

    logger = logging.getLogger(PACKAGE_LOGGER)
    previous_level = logger.level
    if previous_level == logging.NOTSET or previous_level > handler.level:
        logger.setLevel(handler.level)
    logger.addHandler(handler)
    try:
        yield handler
    finally:
        logger.removeHandler(handler)
        logger.setLevel(previous_level)
        handler.close()


def log_step_summary(
    logger,
    step_name,
    status="success",
    input_summary=None,
    output_summary=None,
    timing_seconds=None,
    warnings_list=None,
):
    """Log a structured step summary at DEBUG, or ERROR for failed steps.

    Parameters
    ----------
    logger : logging.Logger
    step_name : str
    status : str
        "success", "skipped", or "error".
    input_summary : dict, optional
    output_summary : dict, optional
    timing_seconds : float, optional
    warnings_list : list[str], optional
    """
    parts = [f"[{step_name}] {status}"]
    if timing_seconds is not None:
        parts.append(f"({timing_seconds:.1f}s)")
    if output_summary:
        parts.append(f"output={output_summary}")

    extra = {"step_name": step_name}
    if input_summary:
        extra["input_summary"] = input_summary
    if output_summary:
        extra["output_summary"] = output_summary
    if timing_seconds is not None:
        extra["timing_seconds"] = timing_seconds
    if warnings_list:
        extra["warnings"] = warnings_list

    if status == "error":
        logger.error(" ".join(parts), extra=extra)
    else:
        logger.debug(" ".join(parts), extra=extra)


class StepTimer:
    """Context manager for timing steps.

    Usage:
        with StepTimer() as t:
            do_work()
        print(t.elapsed)
    """

    def __enter__(self):
        self.start = time.perf_counter()
        return self

    def __exit__(self, *args):
        self.elapsed = time.perf_counter() - self.start
