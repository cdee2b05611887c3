"""
Timeline derivation: records to per-date frames, series and insight context.

Month-over-month and year-over-year changes are percent values
(e.g., 4.5 means +4.5%) and are keyed on calendar months, not row order.
"""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING, Iterable

import numpy as np
import pandas as pd

from market_insights.date_resolver import resolve_date, shift_months
from market_insights.metric_catalog import METRIC_TYPE_IDS
from market_insights.models import (
    RECORD_COLUMNS,
    DataPoint,
    InsightContext,
    MetricRecord,
    TimelinePoint,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

_PERIOD_OFFSETS = {"MoM": 1, "YoY": 12}


def _safe_pct_change(current: pd.Series, previous: pd.Series) -> np.ndarray:
    return np.where(
        (previous.notna()) & (previous != 0),
        (current - previous) / previous.abs() * 100,
        np.nan,
    )


def records_to_frame(records: Iterable[MetricRecord]) -> pd.DataFrame:
    """Long frame, one row per record."""
    return pd.DataFrame([asdict(r) for r in records], columns=RECORD_COLUMNS)


def build_timeline_frame(records: Iterable[MetricRecord]) -> pd.DataFrame:
    """
    Wide frame indexed by recorded_date with one column per metric.

    When a metric has several records for the same date, the last one wins.
    Columns follow catalog order; unknown metric ids are appended after.
    """
    long_df = records_to_frame(records)
    if long_df.empty:
        return pd.DataFrame(index=pd.Index([], name="recorded_date"))

    deduped = long_df.drop_duplicates(subset=["metric_type_id", "recorded_date"], keep="last")
    wide = deduped.pivot(index="recorded_date", columns="metric_type_id", values="value")
    wide = wide.sort_index()

    ordered = [m for m in METRIC_TYPE_IDS if m in wide.columns]
    ordered += [m for m in wide.columns if m not in ordered]
    wide = wide[ordered].astype(float)
    wide.columns.name = None
    return wide


def build_timeline(records: Iterable[MetricRecord]) -> list[TimelinePoint]:
    """Chronological TimelinePoints; missing metrics are simply absent."""
    frame = build_timeline_frame(records)
    timeline = []
    for recorded_date, row in frame.iterrows():
        values = {metric: float(value) for metric, value in row.items() if pd.notna(value)}
        timeline.append(TimelinePoint(date=str(recorded_date), values=values))
    return timeline


def metric_series(
    source: Iterable[MetricRecord] | Iterable[TimelinePoint],
    metric_type_id: str,
) -> list[DataPoint]:
    """
    One metric's chronological series.

    Args:
        source: MetricRecords or TimelinePoints.
        metric_type_id: Metric to extract.
    """
    by_date: dict[str, float] = {}
    for item in source:
        if isinstance(item, TimelinePoint):
            value = item.get(metric_type_id)
            if value is not None:
                by_date[item.date] = value
        elif item.metric_type_id == metric_type_id:
            by_date[item.recorded_date] = item.value
    return [DataPoint(date=d, value=by_date[d]) for d in sorted(by_date)]


def add_period_over_period(
    frame: pd.DataFrame,
    *,
    metrics: Sequence[str] | None = None,
    overwrite: bool = False,
) -> pd.DataFrame:
    """
    Add ``<metric>_MoM`` and ``<metric>_YoY`` percent-change columns.

    The comparison row is the one dated exactly 1 (or 12) calendar months
    earlier; gaps and zero denominators yield NaN.
    """
    if frame.empty:
        return frame.copy()

    result = frame.copy()
    metrics = [m for m in (metrics or list(frame.columns)) if m in frame.columns]

    for suffix, months in _PERIOD_OFFSETS.items():
        prior_dates = [shift_months(str(d), -months) for d in result.index]
        prior = frame.reindex(prior_dates)
        for metric in metrics:
            column = f"{metric}_{suffix}"
            if column in result.columns and not overwrite:
                continue
            previous = pd.Series(prior[metric].to_numpy(), index=result.index)
            result[column] = _safe_pct_change(result[metric], previous)

    return result


def build_insight_context(
    records: Iterable[MetricRecord],
    latest_date: str | None = None,
) -> InsightContext | None:
    """
    Assemble the insight inputs from a batch of records.

    Args:
        records: Normalized records (any order).
        latest_date: Period to describe; defaults to the most recent date.

    Returns:
        InsightContext whose prior dates are set only when data exists for
        the calendar month one month / twelve months earlier, or None when
        there are no records.

    Raises:
        ValueError: If latest_date is given but has no data.
    """
    timeline = build_timeline(records)
    if not timeline:
        return None

    dates = [point.date for point in timeline]
    if latest_date is None:
        latest = dates[-1]
    else:
        latest = resolve_date(latest_date)
        if latest not in dates:
            raise ValueError(f"No data recorded for {latest_date}")

    prior_month = shift_months(latest, -1)
    prior_year = shift_months(latest, -12)

    return InsightContext(
        latest_date=latest,
        prior_month_date=prior_month if prior_month in dates else None,
        prior_year_date=prior_year if prior_year in dates else None,
        timeline=timeline,
    )
