"""Tests for logging setup and per-thread log context."""

import json
import logging
import threading

import pytest

from scaleway_provider.utils.logging import LogContext, get_logger, resolve_log_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


class TestLogLevel:
    @pytest.mark.parametrize("value,level", [
        ("TRACE", logging.DEBUG),
        ("warn", logging.WARNING),
        ("ERROR", logging.ERROR),
        ("whatever", logging.INFO),
    ])
    def test_tf_log(self, monkeypatch, value, level):
        monkeypatch.setenv("TF_LOG", value)
        assert resolve_log_level() == level

    def test_argument_wins(self, monkeypatch):
        monkeypatch.setenv("TF_LOG", "ERROR")
        assert resolve_log_level("debug") == logging.DEBUG


class TestSetupLogging:
    def test_json_lines_file(self, tmp_path, monkeypatch, restore_root_logger):
        monkeypatch.delenv("TF_LOG", raising=False)
        log_path = tmp_path / "provider.log"
        setup_logging(log_path=str(log_path))
        logger = get_logger("scaleway_provider.tests")

        with LogContext(logger, resource_type="scaleway_rdb_instance", resource_id="fr-par/1", operation="read"):
            logger.info("reading instance")
        logger.info("outside")

        lines = [json.loads(line) for line in log_path.read_text().splitlines()]
        assert lines[0]["message"] == "reading instance"
        assert lines[0]["resource_type"] == "scaleway_rdb_instance"
        assert lines[0]["operation"] == "read"
        assert lines[1]["message"] == "outside"
        assert "resource_id" not in lines[1]

    def test_libraries_are_quieted(self, restore_root_logger):
        setup_logging("debug")
        assert logging.getLogger("botocore").level == logging.WARNING
        assert logging.getLogger("urllib3").level == logging.WARNING


class TestLogContext:
    def test_context_is_per_thread(self):
        logger = get_logger("scaleway_provider.tests.threads")
        seen = {}

        class Capture(logging.Handler):
            def emit(self, record):
                seen[record.getMessage()] = getattr(record, "resource_id", None)

        handler = Capture()
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            with LogContext(logger, resource_id="main"):
                thread = threading.Thread(target=lambda: logger.info("from thread"))
                thread.start()
                thread.join()
                logger.info("from main")
        finally:
            logger.removeHandler(handler)

        assert seen == {"from thread": None, "from main": "main"}
