"""Logging for the monitor: a TRACE level below DEBUG and an optional trace file.

Per-line classification chatter goes to TRACE so that ``--debug`` stays
readable while ``--trace`` captures every decision the pipeline makes.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path

TRACE = 5
TRACE_DIR = "debug"
ROOT_LOGGER = "cli_monitor"

logging.addLevelName(TRACE, "TRACE")


def _trace(self, message, *args, **kwargs):
    if self.isEnabledFor(TRACE):
        self._log(TRACE, message, args, **kwargs)


logging.Logger.trace = _trace

_CONSOLE_FMT = "%(levelname)s %(name)s: %(message)s"
_FILE_FMT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s:%(funcName)s:%(lineno)d %(message)s"
_FILE_DATEFMT = "%Y-%m-%d %H:%M:%S"


def _console_level(debug: bool, trace: bool, verbose: bool) -> int:
    if trace and verbose:
        return TRACE
    if debug or trace:
        return logging.DEBUG
    return logging.INFO


def _trace_file_handler(directory: str) -> logging.FileHandler:
    """Open ``<directory>/trace-<timestamp>.log`` at TRACE level."""
    trace_dir = Path(directory)
    trace_dir.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    handler = logging.FileHandler(trace_dir / f"trace-{stamp}.log", encoding="utf-8")
    handler.setLevel(TRACE)
    handler.setFormatter(logging.Formatter(_FILE_FMT, datefmt=_FILE_DATEFMT))
    return handler


def setup_logging(*, debug: bool, trace: bool, verbose: bool) -> logging.Logger:
    """(Re)configure the ``cli_monitor`` logger and return it.

    Console output is INFO by default, DEBUG with ``debug`` or ``trace``,
    and TRACE only when ``trace`` and ``verbose`` are both set. Trace mode
    also records everything to a file under ``TRACE_DIR``. Calling this
    again replaces the handlers installed by a previous call.
    """
    package_logger = logging.getLogger(ROOT_LOGGER)
    for old in list(package_logger.handlers):
        package_logger.removeHandler(old)
        old.close()
    package_logger.setLevel(TRACE)

    console = logging.StreamHandler()
    console.setLevel(_console_level(debug, trace, verbose))
    console.setFormatter(logging.Formatter(_CONSOLE_FMT))
    package_logger.addHandler(console)

    if trace:
        file_handler = _trace_file_handler(TRACE_DIR)
        package_logger.addHandler(file_handler)
        package_logger.debug("Trace log: %s", file_handler.baseFilename)

    return package_logger
