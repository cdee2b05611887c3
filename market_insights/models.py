"""
Core data model shared by extraction and analytics.

Records are plain dataclasses; everything analytics returns is derived and
never persisted by this package.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Literal

import pandas as pd

Provenance = Literal["imported", "manual"]
MarketCondition = Literal["sellers", "buyers", "balanced"]
Confidence = Literal["high", "medium", "low"]
SeasonalComparison = Literal["above", "below", "typical"]
InflectionType = Literal["peak", "trough", "acceleration", "deceleration"]
InsightCategory = Literal["market_condition", "price", "inventory", "velocity"]
InsightPriority = Literal["high", "medium", "low"]

RECORD_COLUMNS = [
    "metric_type_id",
    "display_name",
    "value",
    "recorded_date",
    "is_outlier",
    "outlier_reason",
    "provenance",
]


@dataclass(frozen=True)
class MetricTypeDefinition:
    """One entry of the fixed metric catalog."""

    id: str
    display_name: str
    unit: str  # "USD", "count", "days", "months", "ratio"
    min_value: float
    max_value: float


@dataclass
class MetricRecord:
    """A single normalized metric observation."""

    metric_type_id: str
    value: float
    recorded_date: str  # YYYY-MM-DD
    is_outlier: bool = False
    outlier_reason: str | None = None
    provenance: Provenance = "imported"
    display_name: str = ""


@dataclass
class ValidationResult:
    is_outlier: bool
    reason: str | None = None


@dataclass
class ExtractionResult:
    """Outcome of one extraction batch."""

    success: bool = False
    metrics: list[MetricRecord] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)
    header_row_index: int | None = None

    def to_dataframe(self) -> pd.DataFrame:
        """Return the extracted records as a long DataFrame."""
        return pd.DataFrame([asdict(m) for m in self.metrics], columns=RECORD_COLUMNS)


@dataclass(frozen=True)
class DataPoint:
    date: str
    value: float


@dataclass
class TimelinePoint:
    """All metric values reported for one period."""

    date: str
    values: dict[str, float] = field(default_factory=dict)

    def get(self, metric_type_id: str) -> float | None:
        return self.values.get(metric_type_id)


@dataclass
class MarketSignals:
    """Optional inputs to the market condition classifier."""

    months_of_supply: float | None = None
    days_on_market: float | None = None
    list_to_sale_ratio: float | None = None
    price_yoy_change: float | None = None


@dataclass
class MarketFactor:
    metric: str
    value: float
    indicator: MarketCondition
    weight: float
    description: str


@dataclass
class MarketClassification:
    condition: MarketCondition
    confidence: Confidence
    factors: list[MarketFactor] = field(default_factory=list)


@dataclass
class InflectionPoint:
    date: str
    value: float
    type: InflectionType
    magnitude: float  # percent
    description: str


@dataclass
class Insight:
    """A short structured statement for client conversation."""

    id: str
    headline: str
    context: str
    talking_point: str
    category: InsightCategory
    priority: InsightPriority

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class InsightContext:
    """Inputs to the insight synthesizer."""

    latest_date: str
    prior_month_date: str | None = None
    prior_year_date: str | None = None
    timeline: list[TimelinePoint] = field(default_factory=list)
    metrics_by_date: dict[str, dict[str, float]] | None = None

    def __post_init__(self) -> None:
        if self.metrics_by_date is None:
            self.metrics_by_date = {point.date: dict(point.values) for point in self.timeline}
