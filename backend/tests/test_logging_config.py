"""Tests for structured logging configuration."""

import json
import logging

import pytest

import optimistic_cache.logging_config as logging_config_module
from optimistic_cache.logging_config import (
    clear_correlation_id,
    configure_logging,
    get_correlation_id,
    get_logger,
    mutation_context,
    set_correlation_id,
)


def _json_lines(output: str) -> list[dict]:
    return [json.loads(line) for line in output.strip().split("\n") if line.strip()]


class TestLoggingConfiguration:
    """Test configure_logging function."""

    def test_configure_logging_is_idempotent(self) -> None:
        configure_logging(log_level="DEBUG")
        configure_logging(log_level="DEBUG")
        configure_logging(log_level="INFO")

    def test_configure_logging_accepts_valid_levels(self) -> None:
        for level in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
            configure_logging(log_level=level)

    def test_console_renderer_option(self) -> None:
        configure_logging(log_level="INFO", json_output=False)


class TestCorrelationId:
    """Test correlation_id context management."""

    def setup_method(self) -> None:
        clear_correlation_id()

    def test_get_correlation_id_default(self) -> None:
        assert get_correlation_id() is None

    def test_set_and_get_correlation_id(self) -> None:
        set_correlation_id("test-correlation-123")
        assert get_correlation_id() == "test-correlation-123"

    def test_clear_correlation_id(self) -> None:
        set_correlation_id("test-id")
        clear_correlation_id()
        assert get_correlation_id() is None


class TestStructuredLoggingOutput:
    """Test structured logging output format."""

    def test_log_output_is_json_with_standard_fields(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="DEBUG")

        get_logger("optimistic_cache.test_module").warning("test json output")

        for data in _json_lines(capsys.readouterr().out):
            assert "timestamp" in data
            assert data["level"] == "warning"
            assert data["logger"] == "optimistic_cache.test_module"

    def test_mutation_context_binds_table_and_record(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_logging(log_level="DEBUG")
        logger = get_logger("optimistic_cache.test_module")

        with mutation_context("customers", 42):
            logger.info("inside")
        logger.info("outside")

        lines = _json_lines(capsys.readouterr().out)
        inside = [d for d in lines if d.get("event") == "inside"]
        outside = [d for d in lines if d.get("event") == "outside"]
        for data in inside:
            assert data["table"] == "customers"
            assert data["record_id"] == "42"
        for data in outside:
            assert "table" not in data


class TestMutationCorrelation:
    """Each mutation carries a correlation id in its log context."""

    def setup_method(self) -> None:
        clear_correlation_id()

    def teardown_method(self) -> None:
        clear_correlation_id()

    def test_mints_id_when_none_bound_and_restores_on_exit(self) -> None:
        with mutation_context("shops", "shop-1") as correlation_id:
            assert correlation_id
            assert get_correlation_id() == correlation_id

        assert get_correlation_id() is None

    def test_each_mutation_gets_its_own_id(self) -> None:
        with mutation_context("shops", "shop-1") as first:
            pass
        with mutation_context("shops", "shop-1") as second:
            pass

        assert first != second

    def test_reuses_caller_correlation_id(self) -> None:
        set_correlation_id("request-7")

        with mutation_context("customers", "c-1") as correlation_id:
            assert correlation_id == "request-7"

        assert get_correlation_id() == "request-7"

    def test_configure_logging_defaults_to_settings_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "warning")

        configure_logging()

        try:
            assert logging.getLogger("optimistic_cache").level == logging.WARNING
        finally:
            logging_config_module._CONFIGURED = False
            configure_logging("DEBUG")
