"""Tests for centralized logging behavior and configuration."""

import logging
from io import StringIO

import pytest

from liveprof.logging import (
    ContextFormatter,
    disable_debug_logging,
    enable_debug_logging,
    get_logger,
    reset_logging,
    set_global_log_level,
    setup_file_logging,
    setup_root_logger,
)


@pytest.fixture(autouse=True)
def _reset_logging_each_test():
    """Reset logging state before and after each test to avoid cross-test bleed."""
    reset_logging()
    yield
    reset_logging()


def test_effective_levels_enable_disable():
    """INFO by default, DEBUG after enable, back to INFO after disable."""
    logger = get_logger("liveprof.test")

    capture = StringIO()
    handler = logging.StreamHandler(capture)
    handler.setLevel(logging.DEBUG)
    logger.handlers.clear()
    logger.addHandler(handler)

    logger.info("info-1")
    assert "info-1" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    logger.debug("debug-1")
    assert "debug-1" not in capture.getvalue()

    enable_debug_logging()
    logger.debug("debug-2")
    assert "debug-2" in capture.getvalue()

    capture.seek(0)
    capture.truncate(0)
    disable_debug_logging()
    logger.debug("debug-3")
    assert "debug-3" not in capture.getvalue()
    logger.removeHandler(handler)


def test_global_level_propagates_to_children_and_new_loggers():
    logger1 = get_logger("liveprof.module1")
    logger2 = get_logger("liveprof.module2")

    assert logger1.getEffectiveLevel() == logging.INFO
    assert logger2.getEffectiveLevel() == logging.INFO

    set_global_log_level(logging.WARNING)
    assert logger1.getEffectiveLevel() == logging.WARNING
    assert logger2.getEffectiveLevel() == logging.WARNING

    logger3 = get_logger("liveprof.module3")
    assert logger3.getEffectiveLevel() == logging.WARNING


def test_setup_root_logger_idempotent_no_duplicate_handlers():
    capture = StringIO()
    handler = logging.StreamHandler(capture)
    setup_root_logger(level=logging.INFO, handler=handler)

    root_logger = logging.getLogger("liveprof")
    assert len(root_logger.handlers) == 1

    setup_root_logger(level=logging.DEBUG)
    assert len(root_logger.handlers) == 1

    set_global_log_level(logging.ERROR)
    assert root_logger.level == logging.ERROR


def test_context_is_appended_as_json():
    capture = StringIO()
    handler = logging.StreamHandler(capture)
    setup_root_logger(format_string="%(levelname)s|%(message)s", handler=handler)

    get_logger("liveprof.test.context").warning(
        "Invalid profile data", extra={"context": {"label": "All", "app": "shop"}}
    )
    assert capture.getvalue().strip() == (
        'WARNING|Invalid profile data\t{"app": "shop", "label": "All"}'
    )


def test_context_formatter_without_context():
    record = logging.LogRecord("liveprof", logging.ERROR, __file__, 1, "boom", (), None)
    assert ContextFormatter("%(message)s").format(record) == "boom"


def test_file_logging_uses_tab_separated_lines(tmp_path):
    path = tmp_path / "liveprof.log"
    setup_root_logger(handler=logging.StreamHandler(StringIO()))
    handler = setup_file_logging(path)

    logger = get_logger("liveprof.test.file")
    logger.info("not written")
    logger.error("Can't insert profile data", extra={"context": {"app": "shop"}})
    handler.flush()

    lines = path.read_text(encoding="utf-8").splitlines()
    assert len(lines) == 1
    date, level, message, context = lines[0].split("\t")
    assert len(date) == len("2024-01-01 00:00:00")
    assert level == "ERROR"
    assert message == "Can't insert profile data"
    assert context == '{"app": "shop"}'


def test_global_level_leaves_file_handler_alone(tmp_path):
    handler = setup_file_logging(tmp_path / "liveprof.log")
    set_global_log_level(logging.DEBUG)
    assert handler.level == logging.WARNING
