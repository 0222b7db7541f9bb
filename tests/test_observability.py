"""
Tests for structured logging: handlers, logger configuration, correlation
ids and operation timing.
"""

import io
import json
import logging

import pytest

from paperchain.errors import RegistryError
from paperchain.observability import (
    LogEvent,
    RegistryLayer,
    StructuredHandler,
    TextHandler,
    configure_logging,
    correlation_id_var,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    timed_operation,
)
from paperchain.result import Err, Ok


@pytest.fixture
def restore_logging():
    yield
    configure_logging("info", "json")


@pytest.fixture
def capture():
    """Attach a handler with its own stream to a throwaway logger."""
    def _attach(handler_type):
        stream = io.StringIO()
        log = logging.getLogger(f"paperchain.test.{handler_type.__name__}")
        log.handlers.clear()
        log.addHandler(handler_type(stream))
        log.setLevel(logging.DEBUG)
        log.propagate = False
        return log, stream
    return _attach


def _extra(**overrides):
    extra = {"layer": "registry", "operation": "register-paper", "error_code": "",
             "duration_ms": None, "context": {}}
    extra.update(overrides)
    return extra


class TestLogEvent:

    def test_to_dict_drops_empty_values(self):
        event = LogEvent(timestamp="t", level="info", logger="x", message="m")
        assert event.to_dict() == {"timestamp": "t", "level": "info", "logger": "x", "message": "m"}


class TestStructuredHandler:

    def test_emits_one_json_object_per_line(self, capture):
        log, stream = capture(StructuredHandler)
        token = set_correlation_id("corr-abc")
        try:
            log.warning("Rejected register-paper",
                        extra=_extra(error_code="DUPLICATE_HASH", context={"code": 101}))
        finally:
            correlation_id_var.reset(token)

        lines = stream.getvalue().splitlines()
        assert len(lines) == 1
        payload = json.loads(lines[0])
        assert payload["level"] == "warning"
        assert payload["layer"] == "registry"
        assert payload["operation"] == "register-paper"
        assert payload["error_code"] == "DUPLICATE_HASH"
        assert payload["correlation_id"] == "corr-abc"
        assert payload["context"] == {"code": 101}

    def test_exception_included(self, capture):
        log, stream = capture(StructuredHandler)
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            log.error("failed", exc_info=True, extra=_extra())
        assert "RuntimeError: boom" in json.loads(stream.getvalue())["exception"]


class TestTextHandler:

    def test_plain_line(self, capture):
        log, stream = capture(TextHandler)
        log.info("Paper registered", extra=_extra(context={"paper_id": 1}))
        assert stream.getvalue().strip() == "info registry register-paper Paper registered paper_id=1"

    def test_error_code_rendered(self, capture):
        log, stream = capture(TextHandler)
        log.warning("Rejected", extra=_extra(error_code="INVALID_TITLE"))
        assert "error_code=INVALID_TITLE" in stream.getvalue()


class TestRegistryLogger:

    def test_logger_naming_and_cache(self):
        logger = get_logger("registry", RegistryLayer.REGISTRY)
        assert logger is get_logger("registry", RegistryLayer.REGISTRY)
        assert logger.logger.name == "paperchain.registry.registry"

    def test_configure_logging_swaps_handler(self, restore_logging):
        logger = get_logger("registry", RegistryLayer.REGISTRY)
        configure_logging("debug", "text")
        assert logger.logger.level == logging.DEBUG
        assert any(isinstance(h, TextHandler) for h in logger.logger.handlers)
        assert not any(isinstance(h, StructuredHandler) for h in logger.logger.handlers)

        configure_logging("warning", "json")
        assert logger.logger.level == logging.WARNING
        assert [type(h) for h in logger.logger.handlers].count(StructuredHandler) == 1

    def test_configure_logging_reads_config(self, clean_config, restore_logging):
        clean_config.set("observability.log_level", "error")
        configure_logging()
        assert get_logger("ledger", RegistryLayer.LEDGER).logger.level == logging.ERROR

    def test_configure_logging_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            configure_logging("loud", "json")


class TestCorrelationIds:

    def test_get_creates_when_unset(self):
        token = correlation_id_var.set("")
        try:
            cid = get_correlation_id()
            assert cid.startswith("corr-")
            assert get_correlation_id() == cid
        finally:
            correlation_id_var.reset(token)


class TestTimedOperation:

    def test_success_and_failure(self, caplog):
        logger = get_logger("timing", RegistryLayer.CLI)

        @timed_operation(logger, "lookup")
        def lookup(fail=False):
            if fail:
                raise ValueError("nope")
            return 42

        with caplog.at_level(logging.DEBUG, logger=logger.logger.name):
            assert lookup() == 42
            with pytest.raises(ValueError):
                lookup(fail=True)

        messages = [(r.levelno, r.getMessage()) for r in caplog.records if r.name == logger.logger.name]
        assert messages == [
            (logging.DEBUG, "Operation lookup completed"),
            (logging.WARNING, "Operation lookup failed"),
        ]
        assert all(r.duration_ms >= 0 for r in caplog.records if r.name == logger.logger.name)

    def test_err_result_logged_as_failure(self, caplog):
        logger = get_logger("timing", RegistryLayer.CLI)

        @timed_operation(logger, "lookup")
        def lookup(found):
            return Ok(1) if found else Err(RegistryError.PAPER_NOT_FOUND)

        with caplog.at_level(logging.DEBUG, logger=logger.logger.name):
            assert lookup(True) == Ok(1)
            assert lookup(False) == Err(RegistryError.PAPER_NOT_FOUND)

        records = [r for r in caplog.records if r.name == logger.logger.name]
        assert [(r.levelno, r.getMessage()) for r in records] == [
            (logging.DEBUG, "Operation lookup completed"),
            (logging.WARNING, "Operation lookup failed"),
        ]
        assert records[0].error_code == ""
        assert records[1].error_code == "PAPER_NOT_FOUND"
