"""
Metric validation: bounds checks against the metric catalog.

Out-of-range values are flagged for review, never rejected or altered.
"""

from __future__ import annotations

import math

from market_insights.metric_catalog import format_bound, get_metric_type
from market_insights.models import ValidationResult


def validate_metric(metric_type_id: str, value: float) -> ValidationResult:
    """
    Check a value against the expected range for its metric.

    Args:
        metric_type_id: Canonical metric id.
        value: Parsed numeric value.

    Returns:
        ValidationResult; unknown metric ids are never outliers.
    """
    definition = get_metric_type(metric_type_id)
    if definition is None:
        return ValidationResult(is_outlier=False)

    if value is None or math.isnan(value):
        return ValidationResult(is_outlier=True, reason="Value must be a number")

    if value < definition.min_value:
        return ValidationResult(
            is_outlier=True,
            reason=(
                f"Value {format_bound(value)} is below minimum expected "
                f"({format_bound(definition.min_value)} {definition.unit})"
            ),
        )

    if value > definition.max_value:
        return ValidationResult(
            is_outlier=True,
            reason=(
                f"Value {format_bound(value)} is above maximum expected "
                f"({format_bound(definition.max_value)} {definition.unit})"
            ),
        )

    return ValidationResult(is_outlier=False)
