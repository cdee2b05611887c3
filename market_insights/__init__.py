"""
Market insights core: tabular market reports in, normalized metric records
and client-facing analytics out.
"""

from market_insights.extractor import build_manual_records, extract, extract_rows
from market_insights.inflection import detect_inflection_points
from market_insights.insight_generator import generate_insights
from market_insights.market_conditions import classify_market
from market_insights.metric_validator import validate_metric
from market_insights.seasonal import compare_to_seasonal, get_seasonal_context
from market_insights.timeline import build_insight_context

__all__ = [
    "build_insight_context",
    "build_manual_records",
    "classify_market",
    "compare_to_seasonal",
    "detect_inflection_points",
    "extract",
    "extract_rows",
    "generate_insights",
    "get_seasonal_context",
    "validate_metric",
]
