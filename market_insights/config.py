"""
Configuration Module - Centralized Configuration Hub

Contains all configurable parameters for the market insights core:
- Directory paths and logging settings
- Metric catalog (display names, units, validation bounds)
- Header alias table used by the header parser
- Seasonal baselines, market-condition rules and inflection thresholds

All lookup tables are exposed read-only. Alias overrides are loaded from
JSON files in CONFIG_DIR if available (see bottom of file).
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping


# ============================================================================
# DIRECTORY PATHS
# ============================================================================

# Project root directory (parent of market_insights/)
PROJECT_ROOT = Path(__file__).resolve().parent.parent

# Configuration file directory
CONFIG_DIR = Path(os.environ.get("MARKET_INSIGHTS_CONFIG_DIR", PROJECT_ROOT / "config"))


# ============================================================================
# LOGGING
# ============================================================================

LOG_LEVEL = os.environ.get("MARKET_INSIGHTS_LOG_LEVEL", "INFO").upper()

# Console output is opt-in; the library stays silent unless asked
LOG_CONSOLE = os.environ.get("MARKET_INSIGHTS_LOG_CONSOLE", "").lower() in ("1", "true", "yes")

# File logging is opt-in as well
LOG_FILE: Path | None = (
    Path(os.environ["MARKET_INSIGHTS_LOG_FILE"])
    if os.environ.get("MARKET_INSIGHTS_LOG_FILE")
    else None
)


# ============================================================================
# METRIC CATALOG
# ============================================================================
# One entry per canonical metric id, in definition order.
# Bounds are inclusive; values outside them are flagged, never rejected.

METRIC_UNITS = ("USD", "count", "days", "months", "ratio")

_METRIC_CATALOG_DEFAULT: dict[str, dict[str, Any]] = {
    "median_price": {
        "display_name": "Median Sale Price",
        "unit": "USD",
        "min": 10_000,
        "max": 50_000_000,
    },
    "average_price": {
        "display_name": "Average Sale Price",
        "unit": "USD",
        "min": 10_000,
        "max": 50_000_000,
    },
    "price_per_sqft": {
        "display_name": "Price Per Sq Ft",
        "unit": "USD",
        "min": 10,
        "max": 5_000,
    },
    "active_listings": {
        "display_name": "Active Listings",
        "unit": "count",
        "min": 0,
        "max": 100_000,
    },
    "sales_count": {
        "display_name": "Number of Sales",
        "unit": "count",
        "min": 0,
        "max": 100_000,
    },
    "days_on_market": {
        "display_name": "Days on Market",
        "unit": "days",
        "min": 0,
        "max": 1_000,
    },
    "months_of_supply": {
        "display_name": "Months of Supply",
        "unit": "months",
        "min": 0,
        "max": 36,
    },
    "list_to_sale_ratio": {
        "display_name": "List to Sale Ratio",
        "unit": "ratio",
        "min": 0.5,
        "max": 1.5,
    },
}


# ============================================================================
# HEADER ALIASES
# ============================================================================
# Canonical metric id -> known column wordings (matched case-insensitively as
# substrings in either direction). Definition order resolves ties.

_HEADER_ALIASES_DEFAULT: dict[str, list[str]] = {
    "median_price": [
        "median sale price",
        "median price",
        "median home price",
        "median sold price",
    ],
    "average_price": [
        "average price",
        "avg price",
        "average sale price",
        "avg sale price",
        "monthly sales price average",
        "monthly avg price",
    ],
    "price_per_sqft": [
        "price per sq ft",
        "$/sqft",
        "price/sqft",
        "price per square foot",
        "ppsf",
    ],
    "active_listings": [
        "active listings",
        "inventory",
        "active inventory",
        "listings",
        "total active",
    ],
    "sales_count": [
        "number of sales",
        "sales",
        "closed sales",
        "monthly sales",
        "sales count",
    ],
    "days_on_market": [
        "days on market",
        "dom",
        "avg dom",
        "average dom",
        "average days on market",
    ],
    "months_of_supply": [
        "months of supply",
        "absorption rate",
        "months supply",
        "mos",
    ],
    "list_to_sale_ratio": [
        "list to sale ratio",
        "sp/lp ratio",
        "sale to list",
        "sp/lp",
        "list-to-sale",
    ],
}

DATE_HEADERS = (
    "date",
    "period",
    "time",
    "report date",
    "report period",
    "month ending",
    "period ending",
    "as of",
    "month year",
    "month/year",
)
DATE_HEADER_WORDS = ("date", "period")
MONTH_HEADERS = ("month", "report month")
YEAR_HEADERS = ("year", "report year")
YTD_MARKERS = ("ytd", "year to date")

# Header-row discovery scans this many rows of the raw sheet
HEADER_SCAN_ROWS = 10

# Example headers quoted when a sheet has no recognizable metric columns
EXAMPLE_HEADERS = ("Median Price", "Days on Market", "Active Listings")


# ============================================================================
# SEASONAL BASELINES
# ============================================================================
# Typical month-of-year deviation from the annual baseline, in percent.
# Based on general US residential patterns: spring upswing, holiday slowdown.

_PRICE_SEASONALITY = {
    1: 0.5, 2: 1.0, 3: 2.0, 4: 2.5, 5: 3.0, 6: 2.5,
    7: 2.0, 8: 1.5, 9: 0.5, 10: 0.0, 11: -1.0, 12: -1.5,
}

_SEASONAL_BASELINES_DEFAULT: dict[str, dict[int, float]] = {
    "median_price": dict(_PRICE_SEASONALITY),
    "average_price": dict(_PRICE_SEASONALITY),
    "sales_count": {
        1: -15, 2: -5, 3: 15, 4: 20, 5: 25, 6: 20,
        7: 15, 8: 10, 9: 0, 10: -5, 11: -15, 12: -20,
    },
    # Inverse to demand: lower is a faster market
    "days_on_market": {
        1: 10, 2: 5, 3: -10, 4: -15, 5: -15, 6: -10,
        7: -5, 8: 0, 9: 5, 10: 10, 11: 15, 12: 15,
    },
    "active_listings": {
        1: -10, 2: -5, 3: 5, 4: 15, 5: 20, 6: 15,
        7: 10, 8: 5, 9: 0, 10: -5, 11: -10, 12: -15,
    },
}

# Percentage points around the baseline still considered "typical"
SEASONAL_TOLERANCE = 3.0

# Baseline magnitude beyond which a month is typically strong/weak
SEASONAL_STRENGTH_THRESHOLD = 5.0

# Metrics where a lower value is the "strong" direction
INVERTED_SEASONAL_METRICS = frozenset({"days_on_market"})


# ============================================================================
# MARKET CONDITION RULES
# ============================================================================
# One uniform record per signal. Comparisons are (operator, threshold) with
# operator in {"lt", "le", "gt", "ge"}. Templates receive {value}, {percent}
# (value * 100) and {signed} (value with a leading "+" when positive).

_MARKET_SIGNAL_RULES_DEFAULT: list[dict[str, Any]] = [
    {
        "key": "months_of_supply",
        "label": "Months of Supply",
        "weight": 3,
        "sellers": ("lt", 4.0),
        "buyers": ("gt", 6.0),
        "value_template": "{value:.1f} months of supply",
        "sellers_note": "under 4 indicates seller's market",
        "buyers_note": "over 6 indicates buyer's market",
        "balanced_note": "balanced range 4-6 months",
    },
    {
        "key": "days_on_market",
        "label": "Days on Market",
        "weight": 2,
        "sellers": ("lt", 30.0),
        "buyers": ("gt", 60.0),
        "value_template": "{value:.0f} days on market",
        "sellers_note": "fast sales under 30 days",
        "buyers_note": "slow sales over 60 days",
        "balanced_note": "typical 30-60 day range",
    },
    {
        "key": "list_to_sale_ratio",
        "label": "List-to-Sale Ratio",
        "weight": 2,
        "sellers": ("ge", 1.0),
        "buyers": ("lt", 0.97),
        "value_template": "{percent:.1f}% list-to-sale",
        "sellers_note": "at or above list price",
        "buyers_note": "significant negotiation room",
        "balanced_note": "modest discounts typical",
    },
    {
        "key": "price_yoy_change",
        "label": "Price YoY Change",
        "weight": 1,
        "sellers": ("ge", 5.0),
        "buyers": ("le", 0.0),
        "value_template": "{signed}% YoY price change",
        "sellers_note": "strong appreciation",
        "buyers_note": "prices declining",
        "balanced_note": "moderate growth",
    },
]

# A side needs this share of the supplied weight to win outright
DOMINANT_RATIO = 0.6
HIGH_CONFIDENCE_RATIO = 0.8
# Balanced confidence: max side share under these bounds -> high / medium
BALANCED_HIGH_RATIO = 0.4
BALANCED_MEDIUM_RATIO = 0.5

CONDITION_COLORS = {
    "sellers": "#ef4444",
    "buyers": "#22c55e",
    "balanced": "#d4a853",
}


# ============================================================================
# INFLECTION DETECTION
# ============================================================================

MAX_INFLECTION_POINTS = 5
MIN_INFLECTION_MAGNITUDE = 5.0  # percent
MOMENTUM_WINDOW = 3

INFLECTION_ICONS = {
    "peak": "▲",
    "trough": "▼",
    "acceleration": "⬆",
    "deceleration": "⬇",
}

INFLECTION_COLORS = {
    "peak": "#ef4444",  # potential reversal down
    "trough": "#22c55e",  # potential reversal up
    "acceleration": "#3b82f6",
    "deceleration": "#f59e0b",
}


# ============================================================================
# INSIGHT THRESHOLDS
# ============================================================================

INSIGHT_THRESHOLDS = {
    "price_strong_yoy": 5.0,
    "inventory_critical_months": 3.0,
    "inventory_low_months": 4.0,
    "inventory_elevated_months": 6.0,
    "velocity_fast_days": 30.0,
    "velocity_slow_days": 60.0,
    "sales_swing_pct": 15.0,
    "sales_seasonal_surprise_pct": 10.0,
    "spread_significance_pct": 5.0,
}


# ============================================================================
# CONFIG LOADING AND VALIDATION
# ============================================================================

def _load_header_aliases_from_json(defaults: dict[str, list[str]]) -> dict[str, list[str]]:
    """Load extra header aliases from JSON file, appended after the defaults."""
    aliases_file = CONFIG_DIR / "header_aliases.json"
    if aliases_file.exists():
        try:
            with open(aliases_file, "r", encoding="utf-8") as f:
                data = json.load(f)
                if "aliases" in data:
                    merged = {metric: list(values) for metric, values in defaults.items()}
                    for metric, extra in data["aliases"].items():
                        if isinstance(extra, str):
                            extra = [extra]
                        bucket = merged.setdefault(metric, [])
                        bucket.extend(a for a in extra if a not in bucket)
                    return merged
        except Exception as e:
            import warnings
            warnings.warn(f"Failed to load header aliases from JSON: {e}. Using defaults.")
    return defaults


def _freeze_table(table: Mapping[str, Mapping[Any, Any]]) -> Mapping[str, Mapping[Any, Any]]:
    return MappingProxyType({key: MappingProxyType(dict(value)) for key, value in table.items()})


METRIC_CATALOG = _freeze_table(_METRIC_CATALOG_DEFAULT)
HEADER_ALIASES: Mapping[str, tuple[str, ...]] = MappingProxyType({
    metric: tuple(aliases)
    for metric, aliases in _load_header_aliases_from_json(_HEADER_ALIASES_DEFAULT).items()
})
SEASONAL_BASELINES = _freeze_table(_SEASONAL_BASELINES_DEFAULT)
MARKET_SIGNAL_RULES: tuple[Mapping[str, Any], ...] = tuple(
    MappingProxyType(dict(rule)) for rule in _MARKET_SIGNAL_RULES_DEFAULT
)
CONDITION_COLORS = MappingProxyType(CONDITION_COLORS)
INFLECTION_ICONS = MappingProxyType(INFLECTION_ICONS)
INFLECTION_COLORS = MappingProxyType(INFLECTION_COLORS)
INSIGHT_THRESHOLDS = MappingProxyType(INSIGHT_THRESHOLDS)


def load_config() -> dict[str, Any]:
    """
    Load and return all configuration as a dictionary.

    Returns:
        Dictionary with all configuration values.
    """
    return {
        "project_root": PROJECT_ROOT,
        "config_dir": CONFIG_DIR,
        "log_level": LOG_LEVEL,
        "log_console": LOG_CONSOLE,
        "log_file": LOG_FILE,
        "metric_catalog": METRIC_CATALOG,
        "header_aliases": HEADER_ALIASES,
        "header_scan_rows": HEADER_SCAN_ROWS,
        "seasonal_baselines": SEASONAL_BASELINES,
        "seasonal_tolerance": SEASONAL_TOLERANCE,
        "market_signal_rules": MARKET_SIGNAL_RULES,
        "max_inflection_points": MAX_INFLECTION_POINTS,
        "min_inflection_magnitude": MIN_INFLECTION_MAGNITUDE,
        "insight_thresholds": INSIGHT_THRESHOLDS,
    }


def validate_config() -> tuple[bool, list[str]]:
    """
    Validate configuration settings.

    Returns:
        Tuple of (is_valid, list_of_errors).
    """
    errors = []

    for metric, entry in METRIC_CATALOG.items():
        if entry.get("unit") not in METRIC_UNITS:
            errors.append(f"Unknown unit for {metric}: {entry.get('unit')}")
        if entry.get("min", 0) >= entry.get("max", 0):
            errors.append(f"Invalid bounds for {metric}: min >= max")

    for metric, aliases in HEADER_ALIASES.items():
        if metric not in METRIC_CATALOG:
            errors.append(f"Header aliases reference unknown metric: {metric}")
        if not aliases:
            errors.append(f"No header aliases for {metric}")

    for metric, baseline in SEASONAL_BASELINES.items():
        if metric not in METRIC_CATALOG:
            errors.append(f"Seasonal baseline references unknown metric: {metric}")
        if sorted(baseline) != list(range(1, 13)):
            errors.append(f"Seasonal baseline for {metric} must cover months 1-12")

    seen_keys = set()
    for rule in MARKET_SIGNAL_RULES:
        key = rule.get("key")
        if key in seen_keys:
            errors.append(f"Duplicate market signal rule: {key}")
        seen_keys.add(key)
        weight = rule.get("weight")
        if not isinstance(weight, (int, float)) or weight <= 0:
            errors.append(f"Invalid weight for market signal {key}: {weight}")
        for side in ("sellers", "buyers"):
            op, _ = rule.get(side, (None, None))
            if op not in ("lt", "le", "gt", "ge"):
                errors.append(f"Invalid {side} comparison for market signal {key}: {op}")

    return len(errors) == 0, errors
