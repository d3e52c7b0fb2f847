import io
import json
import logging
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "../../")))

from unittest.mock import patch

from utils.logger import JSONFormatter, NoHttpFilter, PageLogAdapter, reset_logging, setup_logging


def _capture(logger_name: str, formatter: logging.Formatter) -> tuple[logging.Logger, io.StringIO]:
    stream = io.StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(formatter)
    logger = logging.getLogger(logger_name)
    logger.setLevel(logging.DEBUG)
    logger.handlers = [handler]
    logger.propagate = False
    return logger, stream


class TestJSONFormatter:
    """Tests for the JSONFormatter class."""

    def test_format_basic_log(self):
        logger, stream = _capture("test_formatter", JSONFormatter())

        logger.info("Test message")

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["level"] == "INFO"
        assert parsed["logger"] == "test_formatter"
        assert parsed["message"] == "Test message"
        assert "timestamp" in parsed

    def test_format_with_context(self):
        """Context passed through `extra=` lands in the JSON line."""
        logger, stream = _capture("test_context", JSONFormatter())

        logger.info(
            "Matched page",
            extra={"url": "https://www.amazon.com/dp/B000000001", "item_id": "B000000001", "catalog_source": "static"},
        )

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["item_id"] == "B000000001"
        assert parsed["catalog_source"] == "static"
        assert parsed["url"].endswith("/dp/B000000001")

    def test_context_can_be_disabled(self):
        logger, stream = _capture("test_no_context", JSONFormatter(include_context=False))

        logger.info("Trigger", extra={"trigger": "dismiss"})

        parsed = json.loads(stream.getvalue().strip())
        assert "trigger" not in parsed

    def test_duration_included(self):
        logger, stream = _capture("test_duration", JSONFormatter())

        logger.debug("Fetched", extra={"duration_ms": 42})

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["duration_ms"] == 42

    def test_format_error_with_exception(self):
        logger, stream = _capture("test_error", JSONFormatter())

        try:
            raise ValueError("Test error")
        except ValueError:
            logger.error("An error occurred", exc_info=True)

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["level"] == "ERROR"
        assert parsed["error_type"] == "ValueError"
        assert parsed["error_message"] == "Test error"


class TestPageLogAdapter:
    def test_binds_page_identity(self):
        logger, stream = _capture("test_adapter", JSONFormatter())
        log = PageLogAdapter(logger, "https://www.amazon.com/dp/B000000001", "B000000001")

        log.info("Computed", extra={"catalog_source": "remote"})

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["item_id"] == "B000000001"
        assert parsed["catalog_source"] == "remote"

    def test_call_site_extra_wins(self):
        logger, stream = _capture("test_adapter_override", JSONFormatter())
        log = PageLogAdapter(logger, "https://www.amazon.com/dp/B000000001", "B000000001")

        log.info("Image", extra={"url": "https://www.amazon.com/dp/B000000002"})

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["url"].endswith("B000000002")
        assert parsed["item_id"] == "B000000001"


class TestNoHttpFilter:
    def test_blocks_http_client_loggers(self):
        f = NoHttpFilter()
        assert f.filter(logging.LogRecord("httpx", logging.INFO, "", 0, "msg", None, None)) is False
        assert f.filter(logging.LogRecord("httpcore.http11", logging.INFO, "", 0, "msg", None, None)) is False
        assert f.filter(logging.LogRecord("extraction.fetcher", logging.INFO, "", 0, "msg", None, None)) is True


class TestSetupLogging:
    """Tests for the setup_logging function."""

    def teardown_method(self):
        reset_logging()

    def test_setup_logging_idempotent(self):
        """Calling setup_logging multiple times doesn't duplicate handlers."""
        reset_logging()

        setup_logging(debug_mode=False)
        setup_logging(debug_mode=False)
        setup_logging(debug_mode=False)

        root = logging.getLogger()
        assert len(root.handlers) == 1

    def test_debug_mode_sets_debug_level(self):
        reset_logging()
        setup_logging(debug_mode=True)
        assert logging.getLogger().level == logging.DEBUG

    def test_log_level_from_env(self):
        reset_logging()
        with patch.dict(os.environ, {"LOG_LEVEL": "warning"}):
            setup_logging()
        assert logging.getLogger().level == logging.WARNING

    def test_pretty_format_from_env(self):
        reset_logging()
        with patch.dict(os.environ, {"LOG_FORMAT": "pretty"}):
            setup_logging()
        handler = logging.getLogger().handlers[0]
        assert not isinstance(handler.formatter, JSONFormatter)

    def test_json_format_by_default(self):
        reset_logging()
        with patch.dict(os.environ, {"LOG_FORMAT": ""}):
            setup_logging()
        handler = logging.getLogger().handlers[0]
        assert isinstance(handler.formatter, JSONFormatter)

    def test_log_file_handler(self, tmp_path):
        reset_logging()
        log_file = tmp_path / "logs" / "engine.log"

        setup_logging(log_file=log_file)
        logging.getLogger("extraction").warning("Mobile fallback failed")
        for handler in logging.getLogger().handlers:
            handler.flush()

        lines = [json.loads(line) for line in log_file.read_text(encoding="utf-8").splitlines()]
        assert len(logging.getLogger().handlers) == 2
        assert lines[-1]["message"] == "Mobile fallback failed"
