"""
Seasonal baseline comparison.

Compares an observed month-over-month change (percent) with the typical
change for that calendar month. Differences within SEASONAL_TOLERANCE
points are "typical".
"""

from __future__ import annotations

import calendar
import math

from market_insights.config import (
    INVERTED_SEASONAL_METRICS,
    SEASONAL_BASELINES,
    SEASONAL_STRENGTH_THRESHOLD,
    SEASONAL_TOLERANCE,
)
from market_insights.models import SeasonalComparison

# Wording used in seasonal commentary
_SEASONAL_LABELS = {
    "median_price": "Median price",
    "average_price": "Average price",
    "sales_count": "Sales volume",
    "days_on_market": "Days on market",
    "active_listings": "Active inventory",
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def get_seasonal_baseline(metric_type_id: str, month: int) -> float | None:
    baseline = SEASONAL_BASELINES.get(metric_type_id)
    if baseline is None:
        return None
    value = baseline.get(month)
    return float(value) if value is not None else None


def compare_to_seasonal(
    metric_type_id: str,
    month: int,
    observed_change: float,
) -> SeasonalComparison:
    """
    Classify an observed change against the month's baseline.

    Returns "typical" for metrics without a baseline.
    """
    baseline = get_seasonal_baseline(metric_type_id, month)
    if baseline is None:
        return "typical"

    difference = observed_change - baseline
    if difference > SEASONAL_TOLERANCE:
        return "above"
    if difference < -SEASONAL_TOLERANCE:
        return "below"
    return "typical"


def get_seasonal_context(metric_type_id: str, month: int, observed_change: float) -> str:
    """
    One-sentence seasonal commentary, or "" when no baseline exists.

    Example:
        "Sales volume is outperforming typical March patterns (usually 15% gains)"
    """
    baseline = get_seasonal_baseline(metric_type_id, month)
    if baseline is None:
        return ""

    comparison = compare_to_seasonal(metric_type_id, month, observed_change)
    label = _SEASONAL_LABELS.get(metric_type_id, metric_type_id)
    month_name = get_month_name(month)

    if comparison == "typical":
        return f"{label} is tracking typical {month_name} seasonal patterns"

    direction = "gains" if baseline >= 0 else "declines"
    usual = f"usually {_round_half_up(abs(baseline))}% {direction}"
    verb = "outperforming" if comparison == "above" else "underperforming"
    return f"{label} is {verb} typical {month_name} patterns ({usual})"


def get_month_name(month: int) -> str:
    if 1 <= month <= 12:
        return calendar.month_name[month]
    return ""


def get_season_description(month: int) -> str:
    if 3 <= month <= 5:
        return "spring market"
    if 6 <= month <= 8:
        return "summer market"
    if 9 <= month <= 11:
        return "fall market"
    return "winter market"


def is_typically_strong_month(metric_type_id: str, month: int) -> bool:
    baseline = get_seasonal_baseline(metric_type_id, month)
    if baseline is None:
        return False
    # Lower days on market means faster sales
    if metric_type_id in INVERTED_SEASONAL_METRICS:
        return baseline < -SEASONAL_STRENGTH_THRESHOLD
    return baseline > SEASONAL_STRENGTH_THRESHOLD


def is_typically_weak_month(metric_type_id: str, month: int) -> bool:
    baseline = get_seasonal_baseline(metric_type_id, month)
    if baseline is None:
        return False
    if metric_type_id in INVERTED_SEASONAL_METRICS:
        return baseline > SEASONAL_STRENGTH_THRESHOLD
    return baseline < -SEASONAL_STRENGTH_THRESHOLD
