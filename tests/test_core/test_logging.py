"""Tests for logging setup."""

import json
import logging
import sys

from vioinject.core.logging import setup_logging


def test_console_handler_on_stderr():
    """Test console logs go to stderr so stdout stays machine-readable."""
    setup_logging(level=logging.INFO)

    handlers = logging.getLogger().handlers
    assert len(handlers) == 1
    assert handlers[0].stream is sys.stderr
    assert handlers[0].level == logging.INFO


def test_log_file_receives_json(tmp_path):
    """Test --log-file records are written as JSON lines."""
    log_file = tmp_path / "logs" / "run.log"
    setup_logging(level=logging.DEBUG, log_file=str(log_file))

    logging.getLogger("vioinject.test").warning("Mounted %s at %s", "a.iso", "E:\\")
    for handler in logging.getLogger().handlers:
        handler.flush()

    record = json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])
    assert record["event"] == "Mounted a.iso at E:\\"
    assert record["level"] == "warning"
    assert record["logger"] == "vioinject.test"


def test_setup_only_configures_root_logger():
    """Test other loggers inherit the root level instead of being pinned."""
    setup_logging(level=logging.DEBUG)

    assert logging.getLogger().level == logging.DEBUG
    assert logging.getLogger("vioinject.pipeline").level == logging.NOTSET
