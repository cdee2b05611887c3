"""
Insight Generator Module - Client-Facing Market Commentary

Turns the latest period of a normalized timeline into a small, fixed-shape
bundle of insights:
- Market condition (always present)
- Price trend with seasonal context (needs median price and a YoY figure)
- Inventory level and urgency (needs active listings)
- Market velocity (needs sales or days on market)
- Average vs median price spread (only when the gap is significant)

Each insight carries a headline, a context sentence built from the actual
values, and a talking point phrased for client conversation.
"""

from __future__ import annotations

from market_insights.config import INSIGHT_THRESHOLDS
from market_insights.date_resolver import month_of, shift_months
from market_insights.market_conditions import classify_market, get_condition_label
from market_insights.metric_catalog import (
    calculate_percent_change,
    format_metric_value,
    format_number,
)
from market_insights.models import (
    InsightContext,
    InsightPriority,
    Insight,
    MarketClassification,
)
from market_insights.seasonal import (
    compare_to_seasonal,
    get_month_name,
    get_seasonal_context,
    is_typically_strong_month,
    is_typically_weak_month,
)

_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
_CATEGORY_RANK = {"market_condition": 0, "price": 1, "inventory": 2, "velocity": 3}

# Headlines keyed by outcome
HEADLINE_TEMPLATES = {
    "market_condition": "{label} ({confidence} confidence)",
    "price_above": "Prices outperforming seasonal norms",
    "price_below": "Prices underperforming seasonal expectations",
    "price_typical": "Prices tracking seasonal patterns",
    "inventory_critical": "Critically low inventory",
    "inventory_elevated": "Elevated inventory levels",
    "inventory_above": "Inventory above seasonal norms",
    "inventory_below": "Inventory below seasonal norms",
    "inventory_typical": "Inventory at typical levels",
    "velocity_fast": "Fast market velocity",
    "velocity_slow": "Slow market velocity",
    "velocity_surging": "Sales volume surging",
    "velocity_declining": "Sales volume declining",
    "velocity_steady": "Steady market velocity",
    "spread_high_end": "High-end activity lifting averages",
    "spread_entry_level": "Entry-level homes dominating sales",
}

# Talking points with placeholders for dynamic values
TALKING_POINTS = {
    "market_sellers": (
        "Tell buyers: 'Be prepared to act fast and come in with your strongest offer. "
        "Multiple offers are common right now.'"
    ),
    "market_buyers": (
        "Tell buyers: 'You have negotiating power right now. Take your time, make reasonable "
        "offers, and don't be afraid to ask for concessions.'"
    ),
    "market_balanced": (
        "Position this as: 'The market is in equilibrium. Well-priced homes sell well, "
        "but there's room for thoughtful negotiation.'"
    ),
    "price_strong": (
        "Position this as: 'Despite rate concerns, our market remains resilient with "
        "strong price appreciation.'"
    ),
    "price_correction": (
        "Frame this as: 'We're seeing a price correction that's creating buying opportunities. "
        "This is a good time to enter the market.'"
    ),
    "price_seasonal": (
        "Tell clients: 'Prices in {month_name} are following typical seasonal patterns "
        "with {yoy:.1f}% annual growth.'"
    ),
    "inventory_low": (
        "Tell sellers: 'Low inventory means your home will get maximum exposure. "
        "Well-priced properties are selling quickly.'"
    ),
    "inventory_high": (
        "Tell buyers: 'More options are available now. You can be selective and negotiate "
        "from a position of strength.'"
    ),
    "inventory_balanced": (
        "Position this as: 'Inventory is balanced, so both buyers and sellers can transact "
        "with confidence.'"
    ),
    "velocity_fast": (
        "Tell buyers: 'When you find the right home, be ready to move quickly. "
        "Properties are selling fast.'"
    ),
    "velocity_slow": (
        "Tell buyers: 'Sellers are more willing to negotiate. Consider making an offer "
        "below asking price.'"
    ),
    "velocity_strong_month_slow": (
        "Note to clients: 'Even though {month_name} is typically a strong month, "
        "we're seeing slower activity this year.'"
    ),
    "velocity_weak_month_busy": (
        "Note to clients: 'Unusually strong activity for {month_name}, so motivated buyers "
        "are still active in the market.'"
    ),
    "velocity_steady": (
        "Position this as: 'The market is moving at a healthy pace with typical time-to-sell.'"
    ),
    "spread_high_end": (
        "Position this as: 'Luxury properties are trading well in this market, and there's "
        "buyer appetite at higher price points.'"
    ),
    "spread_entry_level": (
        "Position this as: 'First-time buyers are active, and entry-level homes are seeing "
        "strong demand.'"
    ),
}


def _value_at(context: InsightContext, metric_type_id: str, date_str: str | None) -> float | None:
    if not date_str:
        return None
    return context.metrics_by_date.get(date_str, {}).get(metric_type_id)


def _change(current: float | None, previous: float | None) -> float | None:
    if current is None or previous is None:
        return None
    return calculate_percent_change(current, previous)


def _prior_year_date(context: InsightContext) -> str:
    return context.prior_year_date or shift_months(context.latest_date, -12)


def _months_of_supply(context: InsightContext) -> float | None:
    """Active listings / monthly sales, else the recorded months-of-supply figure."""
    latest = context.latest_date
    listings = _value_at(context, "active_listings", latest)
    sales = _value_at(context, "sales_count", latest)
    if listings is not None and sales is not None and sales > 0:
        return listings / sales
    return _value_at(context, "months_of_supply", latest)


def get_market_classification(context: InsightContext) -> MarketClassification:
    """Classify the market as of the context's latest date."""
    latest = context.latest_date
    median = _value_at(context, "median_price", latest)
    median_prior_year = _value_at(context, "median_price", _prior_year_date(context))

    return classify_market(
        months_of_supply=_months_of_supply(context),
        days_on_market=_value_at(context, "days_on_market", latest),
        list_to_sale_ratio=_value_at(context, "list_to_sale_ratio", latest),
        price_yoy_change=_change(median, median_prior_year),
    )


def generate_market_condition_insight(classification: MarketClassification) -> Insight:
    supporting = [
        f.description for f in classification.factors if f.indicator == classification.condition
    ][:2]
    if supporting:
        context = f"Based on {' and '.join(supporting)}."
    else:
        context = "Not enough market signals to favor either side."

    return Insight(
        id="market-condition",
        headline=HEADLINE_TEMPLATES["market_condition"].format(
            label=get_condition_label(classification.condition),
            confidence=classification.confidence,
        ),
        context=context,
        talking_point=TALKING_POINTS[f"market_{classification.condition}"],
        category="market_condition",
        priority="high",
    )


def generate_price_insight(
    median: float,
    yoy_change: float,
    month: int,
    classification: MarketClassification,
) -> Insight:
    """
    Price trend insight; the headline follows the seasonal comparison.

    Args:
        median: Latest median price.
        yoy_change: Year-over-year percent change.
        month: Calendar month of the latest period.
        classification: Current market classification.
    """
    seasonal = compare_to_seasonal("median_price", month, yoy_change)
    seasonal_context = get_seasonal_context("median_price", month, yoy_change)
    priority: InsightPriority = "medium" if seasonal == "typical" else "high"

    direction = "up" if yoy_change >= 0 else "down"
    context = (
        f"Median price at {format_metric_value('median_price', median)}, "
        f"{abs(yoy_change):.1f}% {direction} YoY. {seasonal_context}."
    )

    if yoy_change >= INSIGHT_THRESHOLDS["price_strong_yoy"] and classification.condition == "sellers":
        talking_point = TALKING_POINTS["price_strong"]
    elif yoy_change < 0:
        talking_point = TALKING_POINTS["price_correction"]
    else:
        talking_point = TALKING_POINTS["price_seasonal"].format(
            month_name=get_month_name(month), yoy=abs(yoy_change)
        )

    return Insight(
        id="price-trend",
        headline=HEADLINE_TEMPLATES[f"price_{seasonal}"],
        context=context,
        talking_point=talking_point,
        category="price",
        priority=priority,
    )


def generate_inventory_insight(
    active_listings: float,
    months_of_supply: float | None,
    yoy_change: float | None,
    month: int,
) -> Insight:
    seasonal = compare_to_seasonal("active_listings", month, yoy_change if yoy_change is not None else 0.0)

    if months_of_supply is not None and months_of_supply < INSIGHT_THRESHOLDS["inventory_critical_months"]:
        key, priority = "inventory_critical", "high"
    elif months_of_supply is not None and months_of_supply > INSIGHT_THRESHOLDS["inventory_elevated_months"]:
        key, priority = "inventory_elevated", "high"
    elif seasonal == "above":
        key, priority = "inventory_above", "medium"
    elif seasonal == "below":
        key, priority = "inventory_below", "medium"
    else:
        key, priority = "inventory_typical", "low"

    context = f"{format_number(active_listings)} active listings"
    if months_of_supply is not None:
        context += f" representing {months_of_supply:.1f} months of supply"
    if yoy_change is not None:
        direction = "up" if yoy_change >= 0 else "down"
        context += f" ({abs(yoy_change):.1f}% {direction} YoY)"
    context += "."

    if months_of_supply is not None and months_of_supply < INSIGHT_THRESHOLDS["inventory_low_months"]:
        talking_point = TALKING_POINTS["inventory_low"]
    elif months_of_supply is not None and months_of_supply > INSIGHT_THRESHOLDS["inventory_elevated_months"]:
        talking_point = TALKING_POINTS["inventory_high"]
    else:
        talking_point = TALKING_POINTS["inventory_balanced"]

    return Insight(
        id="inventory",
        headline=HEADLINE_TEMPLATES[key],
        context=context,
        talking_point=talking_point,
        category="inventory",
        priority=priority,
    )


def generate_velocity_insight(
    sales: float | None,
    sales_yoy_change: float | None,
    dom: float | None,
    month: int,
) -> Insight:
    month_name = get_month_name(month)
    fast = dom is not None and dom < INSIGHT_THRESHOLDS["velocity_fast_days"]
    slow = dom is not None and dom > INSIGHT_THRESHOLDS["velocity_slow_days"]

    if fast:
        key, priority = "velocity_fast", "high"
    elif slow:
        key, priority = "velocity_slow", "high"
    elif sales_yoy_change is not None and abs(sales_yoy_change) > INSIGHT_THRESHOLDS["sales_swing_pct"]:
        key = "velocity_surging" if sales_yoy_change > 0 else "velocity_declining"
        priority = "medium"
    else:
        key, priority = "velocity_steady", "low"

    parts = []
    if sales is not None:
        parts.append(f"{format_number(sales)} sales this month")
        if sales_yoy_change is not None:
            direction = "higher" if sales_yoy_change >= 0 else "lower"
            parts.append(f"{abs(sales_yoy_change):.1f}% {direction} than last {month_name}")
    if dom is not None:
        parts.append(f"averaging {dom:.0f} days on market")
    context = ", ".join(parts) + "."

    surprise = INSIGHT_THRESHOLDS["sales_seasonal_surprise_pct"]
    if fast:
        talking_point = TALKING_POINTS["velocity_fast"]
    elif slow:
        talking_point = TALKING_POINTS["velocity_slow"]
    elif (
        is_typically_strong_month("sales_count", month)
        and sales_yoy_change is not None
        and sales_yoy_change < -surprise
    ):
        talking_point = TALKING_POINTS["velocity_strong_month_slow"].format(month_name=month_name)
    elif (
        is_typically_weak_month("sales_count", month)
        and sales_yoy_change is not None
        and sales_yoy_change > surprise
    ):
        talking_point = TALKING_POINTS["velocity_weak_month_busy"].format(month_name=month_name)
    else:
        talking_point = TALKING_POINTS["velocity_steady"]

    return Insight(
        id="velocity",
        headline=HEADLINE_TEMPLATES[key],
        context=context,
        talking_point=talking_point,
        category="velocity",
        priority=priority,
    )


def generate_spread_insight(average_price: float, median_price: float) -> Insight | None:
    """Average vs median gap; None unless it exceeds the significance threshold."""
    if median_price <= 0:
        return None

    spread = average_price - median_price
    spread_pct = spread / median_price * 100
    if abs(spread_pct) <= INSIGHT_THRESHOLDS["spread_significance_pct"]:
        return None

    formatted_avg = format_metric_value("average_price", average_price)
    formatted_spread = format_metric_value("average_price", abs(spread))

    if spread_pct > 0:
        key = "spread_high_end"
        context = (
            f"Average price ({formatted_avg}) is {formatted_spread} above median, "
            "indicating strong luxury market activity."
        )
    else:
        key = "spread_entry_level"
        context = (
            f"Average price ({formatted_avg}) is {formatted_spread} below median, "
            "indicating first-time buyer activity."
        )

    return Insight(
        id="price-spread",
        headline=HEADLINE_TEMPLATES[key],
        context=context,
        talking_point=TALKING_POINTS[key],
        category="price",
        priority="low",
    )


def generate_insights(context: InsightContext | None) -> list[Insight]:
    """
    Build the insight bundle for the context's latest period.

    Missing inputs drop only the insights that depend on them; the market
    condition insight is always present.

    Args:
        context: InsightContext for the period to describe.

    Returns:
        Insights in fixed order: market condition, price, inventory,
        velocity, price spread. Empty when there is no context.
    """
    if context is None:
        return []

    latest = context.latest_date
    prior_year = _prior_year_date(context)
    month = month_of(latest)

    median = _value_at(context, "median_price", latest)
    average = _value_at(context, "average_price", latest)
    sales = _value_at(context, "sales_count", latest)
    listings = _value_at(context, "active_listings", latest)
    dom = _value_at(context, "days_on_market", latest)

    median_yoy = _change(median, _value_at(context, "median_price", prior_year))
    sales_yoy = _change(sales, _value_at(context, "sales_count", prior_year))
    listings_yoy = _change(listings, _value_at(context, "active_listings", prior_year))
    months_of_supply = _months_of_supply(context)

    classification = get_market_classification(context)
    insights = [generate_market_condition_insight(classification)]

    if median is not None and median_yoy is not None:
        insights.append(generate_price_insight(median, median_yoy, month, classification))

    if listings is not None:
        insights.append(generate_inventory_insight(listings, months_of_supply, listings_yoy, month))

    if sales is not None or dom is not None:
        insights.append(generate_velocity_insight(sales, sales_yoy, dom, month))

    if average is not None and median is not None:
        spread = generate_spread_insight(average, median)
        if spread is not None:
            insights.append(spread)

    return insights


def prioritize_insights(insights: list[Insight], top_n: int | None = None) -> list[Insight]:
    """
    Rank insights by priority (high first), then category order.

    Args:
        insights: Insights to rank.
        top_n: Optional number of insights to keep.

    Returns:
        Ranked list (stable for equal rank).
    """
    ranked = sorted(
        insights,
        key=lambda i: (_PRIORITY_RANK[i.priority], _CATEGORY_RANK.get(i.category, 99)),
    )
    return ranked if top_n is None else ranked[:top_n]
