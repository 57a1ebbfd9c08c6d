from __future__ import annotations

import logging
from unittest.mock import patch

import pytest

from cli_monitor.log_setup import ROOT_LOGGER, TRACE, _console_level, setup_logging


def _console(root):
    return [
        h for h in root.handlers
        if isinstance(h, logging.StreamHandler) and not isinstance(h, logging.FileHandler)
    ]


def _files(root):
    return [h for h in root.handlers if isinstance(h, logging.FileHandler)]


class TestTraceLevel:
    def test_trace_level_value(self):
        assert TRACE == 5

    def test_trace_level_name(self):
        assert logging.getLevelName(TRACE) == "TRACE"

    def test_logger_has_trace_method(self):
        setup_logging(debug=False, trace=False, verbose=False)
        logger = logging.getLogger("test.trace")
        assert callable(logger.trace)


class TestSetupLogging:
    def test_returns_package_logger(self):
        root = setup_logging(debug=False, trace=False, verbose=False)
        assert root.name == ROOT_LOGGER

    def test_default_console_info(self):
        root = setup_logging(debug=False, trace=False, verbose=False)
        console = _console(root)
        assert len(console) == 1
        assert console[0].level == logging.INFO

    def test_debug_console_debug(self):
        root = setup_logging(debug=True, trace=False, verbose=False)
        assert _console(root)[0].level == logging.DEBUG

    def test_trace_creates_file_handler(self, tmp_path):
        with patch("cli_monitor.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=False)
        files = _files(root)
        assert len(files) == 1
        assert files[0].level == TRACE

    def test_trace_console_stays_debug(self, tmp_path):
        with patch("cli_monitor.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=False)
        assert _console(root)[0].level == logging.DEBUG

    def test_trace_verbose_console_at_trace(self, tmp_path):
        with patch("cli_monitor.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=True)
        assert _console(root)[0].level == TRACE

    def test_trace_file_naming(self, tmp_path):
        with patch("cli_monitor.log_setup.TRACE_DIR", str(tmp_path)):
            setup_logging(debug=False, trace=True, verbose=False)
        log_files = list(tmp_path.iterdir())
        assert len(log_files) == 1
        assert log_files[0].name.startswith("trace-")
        assert log_files[0].suffix == ".log"

    def test_trace_records_reach_file(self, tmp_path):
        with patch("cli_monitor.log_setup.TRACE_DIR", str(tmp_path)):
            root = setup_logging(debug=False, trace=True, verbose=False)
        logging.getLogger("cli_monitor.pipeline").log(TRACE, "feed chunk len=%d", 12)
        for handler in _files(root):
            handler.flush()
        content = next(tmp_path.iterdir()).read_text()
        assert "TRACE cli_monitor.pipeline" in content
        assert "feed chunk len=12" in content

    def test_no_file_without_trace(self):
        root = setup_logging(debug=True, trace=False, verbose=False)
        assert _files(root) == []

    def test_child_logger_propagates(self):
        setup_logging(debug=True, trace=False, verbose=False)
        child = logging.getLogger("cli_monitor.tracking.dedup")
        assert child.propagate is True
        assert child.getEffectiveLevel() == TRACE

    def test_idempotent_clears_old_handlers(self):
        setup_logging(debug=True, trace=False, verbose=False)
        root = setup_logging(debug=False, trace=False, verbose=False)
        assert len(_console(root)) == 1

    def test_trace_dir_created(self, tmp_path):
        target = tmp_path / "nested" / "debug"
        with patch("cli_monitor.log_setup.TRACE_DIR", str(target)):
            setup_logging(debug=False, trace=True, verbose=False)
        assert len(list(target.iterdir())) == 1


class TestConsoleLevel:
    @pytest.mark.parametrize(
        "debug,trace,verbose,expected",
        [
            (False, False, False, logging.INFO),
            (False, False, True, logging.INFO),
            (True, False, False, logging.DEBUG),
            (False, True, False, logging.DEBUG),
            (True, True, True, TRACE),
        ],
    )
    def test_levels(self, debug, trace, verbose, expected):
        assert _console_level(debug, trace, verbose) == expected
