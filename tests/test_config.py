"""
Tests for configuration tables and logging setup.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import logging

import pytest

import market_insights
from market_insights.config import (
    HEADER_ALIASES,
    METRIC_CATALOG,
    SEASONAL_BASELINES,
    load_config,
    validate_config,
)
from market_insights.logger import debug_watcher, enable_console_logging, get_logger


class TestConfiguration:
    """Tests for configuration module."""

    def test_config_validation(self):
        is_valid, errors = validate_config()
        assert is_valid, f"Configuration errors: {errors}"

    def test_load_config(self):
        config = load_config()
        assert config["header_scan_rows"] == 10
        assert config["seasonal_tolerance"] == 3.0
        assert config["max_inflection_points"] == 5

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            METRIC_CATALOG["walk_score"] = {}
        with pytest.raises(TypeError):
            SEASONAL_BASELINES["median_price"][1] = 99
        assert isinstance(HEADER_ALIASES["median_price"], tuple)

    def test_aliases_cover_catalog(self):
        assert set(HEADER_ALIASES) >= set(METRIC_CATALOG)


class TestLogging:
    """Tests for logger helpers."""

    def test_get_logger_names(self):
        assert get_logger("extractor").name == "market_insights.extractor"
        assert get_logger("market_insights.timeline").name == "market_insights.timeline"
        assert get_logger().name == "market_insights"

    def test_debug_watcher_reraises(self, caplog):
        @debug_watcher
        def explode():
            raise ValueError("boom")

        with caplog.at_level(logging.ERROR, logger="market_insights"):
            with pytest.raises(ValueError):
                explode()
        assert "Exception in explode" in caplog.text

    def test_silent_by_default(self):
        handlers = get_logger().handlers
        assert any(isinstance(h, logging.NullHandler) for h in handlers)
        assert not any(getattr(h, "_market_insights_console", False) for h in handlers)

    def test_enable_console_logging_is_idempotent(self):
        package_logger = get_logger()
        first = enable_console_logging("warning")
        try:
            second = enable_console_logging("debug")
            assert first is second
            assert second.level == logging.DEBUG
            assert package_logger.handlers.count(first) == 1
        finally:
            package_logger.removeHandler(first)
            package_logger.setLevel(logging.NOTSET)


def test_public_api():
    for name in (
        "extract",
        "validate_metric",
        "classify_market",
        "compare_to_seasonal",
        "get_seasonal_context",
        "detect_inflection_points",
        "generate_insights",
    ):
        assert callable(getattr(market_insights, name))
