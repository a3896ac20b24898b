"""Tests for logging context, the JSON formatter and root configuration."""

from __future__ import annotations

import asyncio
import json
import logging
import sys

import pytest

from notification_service.infra.logging import (
    ContextInjectingFilter,
    JSONFormatter,
    clear_log_context,
    configure_logging,
    get_lazy_logger,
    get_log_context,
    remove_from_log_context,
    set_log_context,
    shutdown,
)


def _record(msg: str = "Stream message handled", **extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="notification_service.infra.streams.consumer",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture(autouse=True)
def _clean_context():
    clear_log_context()
    yield
    clear_log_context()


class TestLogContext:
    """Test contextvars-backed log fields."""

    def test_set_merges_and_remove_drops(self) -> None:
        set_log_context(stream="user-events", message_id="1-0")
        set_log_context(notification_id=7)
        remove_from_log_context("message_id", "absent")

        assert get_log_context() == {"stream": "user-events", "notification_id": 7}

    def test_filter_copies_fields_without_overwriting(self) -> None:
        set_log_context(stream="user-events", name="should-not-win")
        record = _record()

        assert ContextInjectingFilter().filter(record) is True
        assert record.stream == "user-events"
        assert record.name == "notification_service.infra.streams.consumer"

    @pytest.mark.asyncio
    async def test_context_is_isolated_per_task(self) -> None:
        async def tag(entry_id: str) -> dict[str, object]:
            set_log_context(message_id=entry_id)
            await asyncio.sleep(0)
            return get_log_context()

        first, second = await asyncio.gather(tag("1-0"), tag("2-0"))

        assert first == {"message_id": "1-0"}
        assert second == {"message_id": "2-0"}
        assert get_log_context() == {}


class TestJSONFormatter:
    """Test the JSON Lines output shape."""

    def test_includes_static_and_extra_fields(self) -> None:
        formatter = JSONFormatter(static={"service": "notification-service"})

        data = json.loads(formatter.format(_record(stream="proctoring-events", entry_id="5-0")))

        assert data["message"] == "Stream message handled"
        assert data["level"] == "INFO"
        assert data["logger"] == "notification_service.infra.streams.consumer"
        assert data["service"] == "notification-service"
        assert data["stream"] == "proctoring-events"
        assert data["timestamp"].endswith("Z")
        assert "trace_id" not in data

    def test_exception_kept_on_one_line(self) -> None:
        try:
            raise RuntimeError("smtp down")
        except RuntimeError:
            record = _record("Send failed")
            record.exc_info = sys.exc_info()

        line = JSONFormatter().format(record)

        assert "\n" not in line
        assert "RuntimeError: smtp down" in json.loads(line)["exception"]


class TestConfigureLogging:
    """Test root logger wiring through the queue listener."""

    def test_writes_json_lines_to_file(self, tmp_path) -> None:
        path = tmp_path / "logs" / "service.jsonl"
        try:
            configure_logging(
                "DEBUG",
                console_enabled=False,
                file_path=path,
                quiet_loggers=("aiosmtplib",),
                service_name="notification-service-test",
            )
            set_log_context(stream="user-events")
            logging.getLogger("notification_service.test").info("Delivered", extra={"channel": "EMAIL"})
            assert logging.getLogger("aiosmtplib").level == logging.WARNING
        finally:
            shutdown()
            logging.captureWarnings(False)

        lines = [json.loads(line) for line in path.read_text().splitlines()]
        (delivered,) = [line for line in lines if line["message"] == "Delivered"]
        assert delivered["service"] == "notification-service-test"
        assert delivered["stream"] == "user-events"
        assert delivered["channel"] == "EMAIL"


class TestLazyLogger:
    """Test deferred message evaluation."""

    def test_callable_not_evaluated_when_disabled(self) -> None:
        logger = get_lazy_logger("notification_service.test.lazy")
        logger.logger.setLevel(logging.INFO)
        calls: list[int] = []

        logger.debug(lambda: calls.append(1) or "expensive")

        assert calls == []

    def test_callable_evaluated_when_enabled(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_lazy_logger("notification_service.test.lazy")
        logger.logger.setLevel(logging.DEBUG)

        with caplog.at_level(logging.DEBUG, logger="notification_service.test.lazy"):
            logger.debug(lambda: "rendered %s", lambda: "welcome_user")

        assert "rendered welcome_user" in caplog.messages
