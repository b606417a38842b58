import json
import logging
from io import StringIO

import pytest

from core.logging_config import (
    ColoredConsoleFormatter,
    CorrelationFilter,
    StructuredFormatter,
    correlation_id,
    get_correlation_id,
    get_logger,
    get_logging_config,
    log_function_call,
    set_correlation_id,
    setup_logging,
)


def make_record(level=logging.INFO, msg="Test message", exc_info=None):
    return logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="/path/to/file.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture(autouse=True)
def reset_correlation_id():
    token = correlation_id.set(None)
    yield
    correlation_id.reset(token)


class TestLoggingSetup:
    """Test logging configuration setup."""

    def test_development_uses_colored_console(self):
        config = get_logging_config("development", "debug")

        console = config["handlers"]["console"]
        assert console["formatter"] == "colored_console"
        assert console["level"] == "DEBUG"
        assert "file" not in config["handlers"]

    def test_production_adds_rotating_file(self, monkeypatch, tmp_path):
        monkeypatch.setenv("LOG_FILE", str(tmp_path / "app.log"))
        config = get_logging_config("production", "INFO")

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert config["handlers"]["file"]["filename"] == str(tmp_path / "app.log")
        assert "file" in config["loggers"]["services"]["handlers"]
        assert "file" in config["root"]["handlers"]

    def test_environment_variables_are_defaults(self, monkeypatch):
        monkeypatch.setenv("ENVIRONMENT", "staging")
        monkeypatch.setenv("LOG_LEVEL", "warning")
        config = get_logging_config()

        assert config["handlers"]["console"]["formatter"] == "structured"
        assert config["loggers"]["api"]["level"] == "WARNING"

    def test_setup_logging_applies_levels(self):
        setup_logging("test", "WARNING")

        assert logging.getLogger("services").level == logging.WARNING
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_get_logger(self):
        """Test getting a logger instance."""
        logger = get_logger("services.prompt_service")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "services.prompt_service"


class TestCorrelationFilter:
    """Test CorrelationFilter functionality."""

    def test_adds_correlation_id(self):
        set_correlation_id("test-correlation-123")
        record = make_record()

        assert CorrelationFilter().filter(record) is True
        assert record.correlation_id == "test-correlation-123"
        assert get_correlation_id() == "test-correlation-123"

    def test_no_correlation_id(self):
        record = make_record()

        assert CorrelationFilter().filter(record) is True
        assert not hasattr(record, "correlation_id")


class TestStructuredFormatter:
    """Test StructuredFormatter functionality."""

    def test_basic_formatting(self):
        record = make_record()
        record.correlation_id = "test-correlation-123"

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["timestamp"]
        assert log_data["level"] == "INFO"
        assert log_data["logger"] == "test_logger"
        assert log_data["message"] == "Test message"
        assert log_data["correlation_id"] == "test-correlation-123"
        assert log_data["module"] == "file"
        assert log_data["line"] == 42
        assert "extra" not in log_data

    def test_extra_fields(self):
        record = make_record(level=logging.ERROR, msg="Error occurred")
        record.prompt_id = "p-1"
        record.process_time_ms = 12.5

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["extra"] == {"prompt_id": "p-1", "process_time_ms": 12.5}

    def test_exception_info(self):
        try:
            raise ValueError("Test exception")
        except ValueError:
            import sys

            record = make_record(level=logging.ERROR, exc_info=sys.exc_info())

        log_data = json.loads(StructuredFormatter().format(record))

        assert log_data["exception"]["type"] == "ValueError"
        assert log_data["exception"]["message"] == "Test exception"
        assert "ValueError: Test exception" in log_data["exception"]["traceback"]


class TestColoredConsoleFormatter:
    """Test ColoredConsoleFormatter functionality."""

    def test_basic_formatting(self):
        record = make_record()
        record.correlation_id = "test-correlation-123"

        formatted = ColoredConsoleFormatter().format(record)

        assert "INFO" in formatted
        assert "test_logger" in formatted
        assert "Test message" in formatted
        assert "[test-correlation-123]" in formatted

    @pytest.mark.parametrize(
        "level", [logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL]
    )
    def test_levels(self, level):
        name = logging.getLevelName(level)
        formatted = ColoredConsoleFormatter().format(make_record(level=level, msg=f"Test {name}"))

        assert name in formatted
        assert ColoredConsoleFormatter.COLORS[name] in formatted


class TestLogFunctionCallDecorator:
    """Test log_function_call decorator functionality."""

    @pytest.fixture
    def captured_logger(self):
        log_capture = StringIO()
        handler = logging.StreamHandler(log_capture)
        handler.setFormatter(StructuredFormatter())

        logger = logging.getLogger("tests.decorator")
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        yield logger, log_capture
        logger.removeHandler(handler)

    def test_sync_function_logging(self, captured_logger):
        logger, log_capture = captured_logger

        @log_function_call(logger)
        def add(x, y):
            return x + y

        assert add(1, 2) == 3
        lines = [json.loads(line) for line in log_capture.getvalue().splitlines()]
        assert [line["message"] for line in lines] == ["Calling add", "Completed add"]
        assert "execution_time_ms" in lines[-1]["extra"]

    async def test_async_function_logging(self, captured_logger):
        logger, log_capture = captured_logger

        @log_function_call(logger)
        async def multiply(x, y):
            return x * y

        assert await multiply(3, 4) == 12
        assert "Completed multiply" in log_capture.getvalue()

    async def test_async_exception_is_logged_and_reraised(self, captured_logger):
        logger, log_capture = captured_logger

        @log_function_call(logger)
        async def failing():
            raise RuntimeError("Async test exception")

        with pytest.raises(RuntimeError):
            await failing()

        last = json.loads(log_capture.getvalue().splitlines()[-1])
        assert last["extra"]["success"] is False
        assert last["extra"]["error_type"] == "RuntimeError"

    def test_wrapper_preserves_name(self, mock_logger):
        @log_function_call(mock_logger)
        def documented():
            """Docstring"""

        documented()
        assert documented.__name__ == "documented"
        assert mock_logger.debug.call_count == 2
