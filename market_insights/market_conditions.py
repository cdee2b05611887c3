"""
Market Condition Classifier - weighted rule engine.

Each configured signal votes "sellers", "buyers" or "balanced" with its
weight. Only supplied signals count toward the total, so a missing signal
never drags the result toward either side.
"""

from __future__ import annotations

import math
import operator
from dataclasses import dataclass, fields
from typing import Any, Callable, Mapping

from market_insights.config import (
    BALANCED_HIGH_RATIO,
    BALANCED_MEDIUM_RATIO,
    CONDITION_COLORS,
    DOMINANT_RATIO,
    HIGH_CONFIDENCE_RATIO,
    MARKET_SIGNAL_RULES,
)
from market_insights.logger import get_logger
from market_insights.models import (
    Confidence,
    MarketClassification,
    MarketCondition,
    MarketFactor,
    MarketSignals,
)

logger = get_logger(__name__)

_OPERATORS: dict[str, Callable[[float, float], bool]] = {
    "lt": operator.lt,
    "le": operator.le,
    "gt": operator.gt,
    "ge": operator.ge,
}

_CONDITION_LABELS = {
    "sellers": "Seller's Market",
    "buyers": "Buyer's Market",
    "balanced": "Balanced Market",
}

# camelCase spellings accepted in signal mappings
_SIGNAL_ALIASES = {
    "monthsOfSupply": "months_of_supply",
    "daysOnMarket": "days_on_market",
    "listToSaleRatio": "list_to_sale_ratio",
    "priceYoYChange": "price_yoy_change",
    "priceYoyChange": "price_yoy_change",
}


@dataclass(frozen=True)
class SignalRule:
    key: str
    label: str
    weight: float
    sellers: tuple[str, float]
    buyers: tuple[str, float]
    value_template: str
    sellers_note: str
    buyers_note: str
    balanced_note: str

    @classmethod
    def from_config(cls, entry: Mapping[str, Any]) -> "SignalRule":
        return cls(
            key=entry["key"],
            label=entry["label"],
            weight=float(entry["weight"]),
            sellers=(entry["sellers"][0], float(entry["sellers"][1])),
            buyers=(entry["buyers"][0], float(entry["buyers"][1])),
            value_template=entry["value_template"],
            sellers_note=entry["sellers_note"],
            buyers_note=entry["buyers_note"],
            balanced_note=entry["balanced_note"],
        )

    def indicator(self, value: float) -> MarketCondition:
        op, threshold = self.sellers
        if _OPERATORS[op](value, threshold):
            return "sellers"
        op, threshold = self.buyers
        if _OPERATORS[op](value, threshold):
            return "buyers"
        return "balanced"

    def describe(self, value: float, indicator: MarketCondition) -> str:
        signed = f"+{value:.1f}" if value > 0 else f"{value:.1f}"
        quoted = self.value_template.format(value=value, percent=value * 100, signed=signed)
        note = {
            "sellers": self.sellers_note,
            "buyers": self.buyers_note,
            "balanced": self.balanced_note,
        }[indicator]
        return f"{quoted} ({note})"


SIGNAL_RULES: tuple[SignalRule, ...] = tuple(SignalRule.from_config(r) for r in MARKET_SIGNAL_RULES)

_SIGNAL_FIELDS = {f.name for f in fields(MarketSignals)}


def _coerce_signals(
    signals: MarketSignals | Mapping[str, Any] | None,
    overrides: Mapping[str, Any],
) -> MarketSignals:
    if isinstance(signals, MarketSignals):
        values = {name: getattr(signals, name) for name in _SIGNAL_FIELDS}
    elif signals is None:
        values = {}
    else:
        values = dict(signals)

    values.update(overrides)

    resolved: dict[str, float | None] = {}
    for key, value in values.items():
        name = _SIGNAL_ALIASES.get(key, key)
        if name not in _SIGNAL_FIELDS:
            raise ValueError(f"Unknown market signal: {key}")
        if value is None:
            continue
        number = float(value)
        if math.isnan(number):
            continue
        resolved[name] = number

    return MarketSignals(**resolved)


def classify_market(
    signals: MarketSignals | Mapping[str, Any] | None = None,
    **kwargs: Any,
) -> MarketClassification:
    """
    Classify the market from whichever signals are available.

    Args:
        signals: MarketSignals, or a mapping with snake_case or camelCase keys.
        **kwargs: Individual signals (override the mapping).

    Returns:
        MarketClassification. With no signals: balanced, low confidence,
        no factors.

    Example:
        >>> classify_market(months_of_supply=8, days_on_market=75).condition
        'buyers'
    """
    resolved = _coerce_signals(signals, kwargs)

    factors: list[MarketFactor] = []
    scores = {"sellers": 0.0, "buyers": 0.0}
    total_weight = 0.0

    for rule in SIGNAL_RULES:
        value = getattr(resolved, rule.key)
        if value is None:
            continue
        indicator = rule.indicator(value)
        factors.append(
            MarketFactor(
                metric=rule.label,
                value=value,
                indicator=indicator,
                weight=rule.weight,
                description=rule.describe(value, indicator),
            )
        )
        if indicator in scores:
            scores[indicator] += rule.weight
        total_weight += rule.weight

    if total_weight == 0:
        return MarketClassification(condition="balanced", confidence="low", factors=[])

    sellers_ratio = scores["sellers"] / total_weight
    buyers_ratio = scores["buyers"] / total_weight

    condition: MarketCondition
    confidence: Confidence
    if sellers_ratio >= DOMINANT_RATIO:
        condition = "sellers"
        confidence = "high" if sellers_ratio >= HIGH_CONFIDENCE_RATIO else "medium"
    elif buyers_ratio >= DOMINANT_RATIO:
        condition = "buyers"
        confidence = "high" if buyers_ratio >= HIGH_CONFIDENCE_RATIO else "medium"
    else:
        condition = "balanced"
        # Balanced is most certain when neither side comes close
        max_ratio = max(sellers_ratio, buyers_ratio)
        if max_ratio < BALANCED_HIGH_RATIO:
            confidence = "high"
        elif max_ratio < BALANCED_MEDIUM_RATIO:
            confidence = "medium"
        else:
            confidence = "low"

    logger.debug(
        f"Market classified {condition}/{confidence} "
        f"(sellers={sellers_ratio:.2f}, buyers={buyers_ratio:.2f}, signals={len(factors)})"
    )
    return MarketClassification(condition=condition, confidence=confidence, factors=factors)


def get_condition_label(condition: MarketCondition) -> str:
    return _CONDITION_LABELS[condition]


def get_condition_color(condition: MarketCondition) -> str:
    return CONDITION_COLORS[condition]
