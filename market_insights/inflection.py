"""
Inflection point detection for a single metric series.

Two detectors run over the chronologically sorted series:
- Local extrema: a point strictly above (peak) or below (trough) both
  neighbours; magnitude is the smaller of the two adjacent percent deltas.
- Momentum shifts: percent change over (i-3 -> i-1) versus (i -> i+2).

Results are ranked by magnitude, capped, then returned in date order.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import pandas as pd

from market_insights.config import (
    INFLECTION_COLORS,
    INFLECTION_ICONS,
    MAX_INFLECTION_POINTS,
    MIN_INFLECTION_MAGNITUDE,
    MOMENTUM_WINDOW,
)
from market_insights.metric_catalog import format_number
from market_insights.models import DataPoint, InflectionPoint, InflectionType

if TYPE_CHECKING:
    from collections.abc import Iterable

# Extrema need one neighbour on each side
_MIN_EXTREMA_POINTS = 3
_MIN_MOMENTUM_POINTS = 2 * MOMENTUM_WINDOW


def _to_point(item: Any) -> DataPoint:
    if isinstance(item, DataPoint):
        return item
    if isinstance(item, Mapping):
        return DataPoint(date=str(item["date"]), value=float(item["value"]))
    date_value, value = item
    return DataPoint(date=str(date_value), value=float(value))


def _pct(start: float, end: float) -> float | None:
    if start <= 0:
        return None
    return (end - start) / start * 100


def format_inflection_value(value: float, unit: str | None = None) -> str:
    """
    Compact value for descriptions.

    Without a unit (or with "USD") large values are quoted as money:
    1,250,000 -> "$1.25M", 452,000 -> "$452K".
    """
    if unit in (None, "USD"):
        if value >= 1_000_000:
            return f"${value / 1_000_000:.2f}M"
        if value >= 1_000:
            return f"${value / 1_000:.0f}K"
    return format_number(value)


def _detect_extrema(points: list[DataPoint], label: str, unit: str | None) -> list[InflectionPoint]:
    found = []
    for i in range(1, len(points) - 1):
        prev, curr, nxt = points[i - 1].value, points[i].value, points[i + 1].value

        if curr > prev and curr > nxt:
            left, right = _pct(prev, curr), _pct(nxt, curr)
            kind: InflectionType = "peak"
            verb = "peaked"
        elif curr < prev and curr < nxt:
            left, right = _pct(curr, prev), _pct(curr, nxt)
            kind = "trough"
            verb = "bottomed"
        else:
            continue

        if left is None or right is None:
            continue
        magnitude = min(left, right)
        if magnitude < MIN_INFLECTION_MAGNITUDE:
            continue

        found.append(
            InflectionPoint(
                date=points[i].date,
                value=curr,
                type=kind,
                magnitude=magnitude,
                description=f"{label} {verb} at {format_inflection_value(curr, unit)}",
            )
        )
    return found


def _detect_momentum(points: list[DataPoint], label: str) -> list[InflectionPoint]:
    if len(points) < _MIN_MOMENTUM_POINTS:
        return []

    window = MOMENTUM_WINDOW
    found = []
    for i in range(window, len(points) - (window - 1)):
        previous = _pct(points[i - window].value, points[i - 1].value)
        current = _pct(points[i].value, points[i + window - 1].value)
        if previous is None or current is None:
            continue

        shift = current - previous
        if abs(shift) <= MIN_INFLECTION_MAGNITUDE:
            continue

        accelerating = shift > 0
        found.append(
            InflectionPoint(
                date=points[i].date,
                value=points[i].value,
                type="acceleration" if accelerating else "deceleration",
                magnitude=abs(shift),
                description=f"{label} momentum {'accelerated' if accelerating else 'slowed'}",
            )
        )
    return found


def detect_inflection_points(
    series: Iterable[Any],
    label: str = "Value",
    *,
    unit: str | None = None,
) -> list[InflectionPoint]:
    """
    Find the most significant turning points of a series.

    Args:
        series: DataPoints, (date, value) pairs or {"date", "value"} mappings.
        label: Metric name used in descriptions.
        unit: Metric unit; controls how values are quoted in descriptions.

    Returns:
        At most MAX_INFLECTION_POINTS points, ascending by date. Series
        shorter than three points yield an empty list.
    """
    points = [_to_point(item) for item in series]
    if len(points) < _MIN_EXTREMA_POINTS:
        return []

    points.sort(key=lambda p: pd.Timestamp(p.date))

    candidates = _detect_extrema(points, label, unit) + _detect_momentum(points, label)
    # Stable sort keeps detector order for equal magnitudes
    ranked = sorted(candidates, key=lambda p: p.magnitude, reverse=True)[:MAX_INFLECTION_POINTS]
    return sorted(ranked, key=lambda p: pd.Timestamp(p.date))


def get_inflection_icon(kind: InflectionType) -> str:
    return INFLECTION_ICONS[kind]


def get_inflection_color(kind: InflectionType) -> str:
    return INFLECTION_COLORS[kind]
