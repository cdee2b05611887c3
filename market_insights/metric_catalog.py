"""
Metric catalog: canonical metric definitions and unit-aware formatting.
"""

from __future__ import annotations

from market_insights.config import METRIC_CATALOG
from market_insights.models import MetricTypeDefinition

METRIC_TYPES: tuple[MetricTypeDefinition, ...] = tuple(
    MetricTypeDefinition(
        id=metric_id,
        display_name=entry["display_name"],
        unit=entry["unit"],
        min_value=float(entry["min"]),
        max_value=float(entry["max"]),
    )
    for metric_id, entry in METRIC_CATALOG.items()
)

_BY_ID = {definition.id: definition for definition in METRIC_TYPES}

METRIC_TYPE_IDS: tuple[str, ...] = tuple(_BY_ID)


def get_metric_types() -> list[MetricTypeDefinition]:
    return list(METRIC_TYPES)


def get_metric_type(metric_type_id: str) -> MetricTypeDefinition | None:
    return _BY_ID.get(metric_type_id)


def get_display_name(metric_type_id: str) -> str:
    definition = _BY_ID.get(metric_type_id)
    return definition.display_name if definition else metric_type_id


def format_metric_value(metric_type_id: str, value: float) -> str:
    """
    Format a value the way it is quoted in insight text.

    USD -> "$450,000", ratio -> "98.5%", months -> "4.2 mo",
    days -> "31 days", count -> "1,234".
    """
    definition = _BY_ID.get(metric_type_id)
    unit = definition.unit if definition else None

    if unit == "USD":
        sign = "-" if value < 0 else ""
        return f"{sign}${abs(value):,.0f}"
    if unit == "ratio":
        return f"{value * 100:.1f}%"
    if unit == "months":
        return f"{value:.1f} mo"
    if unit == "days":
        return f"{value:.0f} days"
    return format_number(value)


def format_number(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_bound(value: float) -> str:
    """Render a bound without a spurious trailing ".0"."""
    if float(value).is_integer():
        return str(int(value))
    return str(round(value, 6))


def calculate_percent_change(current: float, previous: float) -> float | None:
    """Percent change from previous to current; None when previous is 0."""
    if previous == 0:
        return None
    return ((current - previous) / previous) * 100
