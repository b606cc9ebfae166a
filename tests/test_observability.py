"""Tests for the observability module.

Tests for metrics collection, logging configuration, and error sanitization.
"""
import json
import logging
import tempfile
import time
from pathlib import Path
from unittest.mock import patch

import pytest

from vault_resort.observability import (
    PACKAGE_LOGGER,
    MetricsCollector,
    _sanitize_error_message,
    configure_logging,
    timed_operation,
    traced,
)


class TestErrorMessageSanitization:
    """Tests for error message sanitization."""

    def test_sanitize_none_returns_none(self):
        assert _sanitize_error_message(None) is None

    def test_sanitize_removes_home_directory(self):
        """Home directory paths should be replaced with ~."""
        home = str(Path.home())
        result = _sanitize_error_message(f"{home}/vault/img.png: Permission denied")
        assert home not in result
        assert result.startswith("~")

    def test_sanitize_flattens_whitespace(self):
        assert _sanitize_error_message("  Line 1\nLine 2\r   Line 3 ") == "Line 1 Line 2 Line 3"

    def test_sanitize_truncates_long_messages(self):
        result = _sanitize_error_message("a" * 300)
        assert len(result) == 200
        assert result.endswith("...")


class TestMetricsCollector:
    """Tests for MetricsCollector class."""

    @pytest.fixture
    def temp_metrics_file(self):
        """Create a temporary path for metrics storage."""
        with tempfile.TemporaryDirectory() as temp_dir:
            yield Path(temp_dir) / "metrics.json"

    @pytest.fixture
    def metrics_collector(self, temp_metrics_file):
        """Create a MetricsCollector with temp file."""
        return MetricsCollector(
            metrics_file=temp_metrics_file,
            save_every=0
        )

    def test_record_operations_aggregated(self, metrics_collector):
        """Test that multiple operations are aggregated correctly."""
        metrics_collector.record_operation("move_attachments", 100.0, True)
        metrics_collector.record_operation("move_attachments", 200.0, True)
        metrics_collector.record_operation("move_attachments", 300.0, False, "Error")

        metrics = metrics_collector.get_metrics()["move_attachments"]
        assert metrics == {
            "count": 3,
            "error_count": 1,
            "avg_duration_ms": 200.0,
            "last_error": "Error",
        }

    def test_save_and_load_metrics(self, temp_metrics_file):
        """Test saving and loading metrics."""
        collector1 = MetricsCollector(metrics_file=temp_metrics_file, save_every=0)
        collector1.record_operation("op1", 100.0, True)
        collector1.record_operation("op2", 200.0, False, "Error")
        assert collector1.save_metrics()

        with open(temp_metrics_file) as f:
            data = json.load(f)
        assert set(data["operations"]) == {"op1", "op2"}

        collector2 = MetricsCollector(metrics_file=temp_metrics_file, save_every=0)
        metrics = collector2.get_metrics()
        assert metrics["op1"]["count"] == 1
        assert metrics["op2"]["error_count"] == 1

    def test_auto_save(self, temp_metrics_file):
        """Test that metrics are written every N operations."""
        collector = MetricsCollector(metrics_file=temp_metrics_file, save_every=2)
        collector.record_operation("op", 1.0, True)
        assert not temp_metrics_file.exists()
        collector.record_operation("op", 1.0, True)
        assert temp_metrics_file.exists()

    def test_corrupt_metrics_file_ignored(self, temp_metrics_file):
        temp_metrics_file.write_text("{not json", encoding="utf-8")
        collector = MetricsCollector(metrics_file=temp_metrics_file, save_every=0)
        assert collector.get_metrics() == {}

    def test_get_summary_and_reset(self, metrics_collector):
        """Test getting metrics summary, then resetting."""
        metrics_collector.record_operation("op1", 100.0, True)
        metrics_collector.record_operation("op2", 200.0, False, "Error")

        summary = metrics_collector.get_summary()
        assert summary["total_operations"] == 2
        assert summary["total_errors"] == 1
        assert summary["overall_success_rate"] == 0.5

        metrics_collector.reset()
        assert metrics_collector.get_metrics() == {}


class TestTimedOperation:
    """Tests for timed_operation and traced."""

    @pytest.fixture
    def collector(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            collector = MetricsCollector(
                metrics_file=Path(temp_dir) / "metrics.json", save_every=0
            )
            with patch('vault_resort.observability.metrics', collector):
                yield collector

    def test_timed_operation_records_success(self, collector):
        with timed_operation("test_op") as op:
            time.sleep(0.01)
            op["result_count"] = 3

        metrics = collector.get_metrics()
        assert metrics["test_op"]["count"] == 1
        assert metrics["test_op"]["error_count"] == 0
        assert metrics["test_op"]["avg_duration_ms"] >= 10

    def test_timed_operation_records_failure(self, collector):
        with pytest.raises(ValueError):
            with timed_operation("test_op"):
                raise ValueError("Test error")

        metrics = collector.get_metrics()
        assert metrics["test_op"]["error_count"] == 1
        assert "Test error" in metrics["test_op"]["last_error"]

    def test_traced_uses_function_name(self, collector):
        @traced()
        def list_things():
            return [1, 2, 3]

        @traced("named_op")
        def other():
            return None

        assert list_things() == [1, 2, 3]
        other()
        assert set(collector.get_metrics()) == {"list_things", "named_op"}


class TestConfigureLogging:
    """Tests for configure_logging function."""

    @pytest.fixture(autouse=True)
    def restore_logger(self):
        """Remove handlers added to the package logger."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        handlers = list(package_logger.handlers)
        level = package_logger.level
        yield
        for handler in package_logger.handlers:
            if handler not in handlers:
                handler.close()
        package_logger.handlers = handlers
        package_logger.setLevel(level)

    def test_configure_logging_creates_directory(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_dir = Path(temp_dir) / "logs"

            result = configure_logging(log_dir=log_dir, console=False)

            assert result == log_dir
            assert log_dir.is_dir()
            assert (log_dir / "vault-resort.log").exists()

    def test_configure_logging_sets_level(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            configure_logging(log_dir=Path(temp_dir) / "logs", level=logging.DEBUG, console=False)

            assert logging.getLogger(PACKAGE_LOGGER).level == logging.DEBUG

    def test_module_loggers_write_to_file(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            log_dir = configure_logging(log_dir=Path(temp_dir) / "logs", console=False)

            logging.getLogger("vault_resort.services.attachment_mover").info("moved test.png")
            for handler in logging.getLogger(PACKAGE_LOGGER).handlers:
                handler.flush()

            assert "moved test.png" in (log_dir / "vault-resort.log").read_text(encoding="utf-8")
