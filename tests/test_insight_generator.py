"""
Unit tests for the insight generator.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from market_insights.insight_generator import (
    generate_insights,
    generate_spread_insight,
    generate_velocity_insight,
    get_market_classification,
    prioritize_insights,
)
from market_insights.models import InsightContext, MetricRecord
from market_insights.timeline import build_insight_context


def _records(by_date):
    return [
        MetricRecord(metric_type_id=metric, value=value, recorded_date=recorded_date)
        for recorded_date, values in by_date.items()
        for metric, value in values.items()
    ]


class TestGenerateInsights:
    """Tests for the full insight bundle."""

    def setup_method(self):
        records = _records({
            "2023-05-01": {"median_price": 450000, "sales_count": 90, "active_listings": 300},
            "2024-05-01": {
                "median_price": 480000,
                "average_price": 540000,
                "sales_count": 100,
                "active_listings": 250,
                "days_on_market": 20,
                "list_to_sale_ratio": 1.02,
            },
        })
        self.context = build_insight_context(records)
        self.insights = generate_insights(self.context)
        self.by_id = {i.id: i for i in self.insights}

    def test_fixed_order(self):
        assert [i.id for i in self.insights] == [
            "market-condition",
            "price-trend",
            "inventory",
            "velocity",
            "price-spread",
        ]

    def test_market_condition(self):
        insight = self.by_id["market-condition"]
        assert insight.headline == "Seller's Market (high confidence)"
        assert insight.context == (
            "Based on 2.5 months of supply (under 4 indicates seller's market) "
            "and 20 days on market (fast sales under 30 days)."
        )
        assert insight.talking_point.startswith("Tell buyers: 'Be prepared to act fast")
        assert insight.category == "market_condition"
        assert insight.priority == "high"

    def test_price(self):
        insight = self.by_id["price-trend"]
        assert insight.headline == "Prices outperforming seasonal norms"
        assert insight.priority == "high"
        assert insight.context.startswith("Median price at $480,000, 6.7% up YoY. ")
        assert "outperforming typical May patterns" in insight.context
        assert "strong price appreciation" in insight.talking_point

    def test_inventory(self):
        insight = self.by_id["inventory"]
        assert insight.headline == "Critically low inventory"
        assert insight.priority == "high"
        assert insight.context == (
            "250 active listings representing 2.5 months of supply (16.7% down YoY)."
        )
        assert insight.talking_point.startswith("Tell sellers:")

    def test_velocity(self):
        insight = self.by_id["velocity"]
        assert insight.headline == "Fast market velocity"
        assert insight.context == (
            "100 sales this month, 11.1% higher than last May, averaging 20 days on market."
        )

    def test_spread(self):
        insight = self.by_id["price-spread"]
        assert insight.headline == "High-end activity lifting averages"
        assert insight.context == (
            "Average price ($540,000) is $60,000 above median, "
            "indicating strong luxury market activity."
        )
        assert insight.priority == "low"
        assert insight.category == "price"

    def test_classification_helper(self):
        classification = get_market_classification(self.context)
        assert classification.condition == "sellers"
        assert len(classification.factors) == 4


class TestPartialInputs:
    """Missing inputs suppress only the dependent insights."""

    def test_only_latest_median(self):
        context = build_insight_context(_records({"2024-05-01": {"median_price": 480000}}))
        insights = generate_insights(context)
        assert [i.id for i in insights] == ["market-condition"]
        assert insights[0].headline == "Balanced Market (low confidence)"

    def test_recorded_months_of_supply_fallback(self):
        context = build_insight_context(_records({
            "2024-01-01": {"active_listings": 500, "months_of_supply": 7.5},
        }))
        by_id = {i.id: i for i in generate_insights(context)}
        assert by_id["inventory"].headline == "Elevated inventory levels"
        assert "7.5 months of supply" in by_id["inventory"].context
        assert "velocity" not in by_id
        assert by_id["market-condition"].headline == "Buyer's Market (high confidence)"

    def test_small_spread_is_suppressed(self):
        context = build_insight_context(_records({
            "2024-05-01": {"median_price": 480000, "average_price": 500000},
        }))
        assert "price-spread" not in [i.id for i in generate_insights(context)]

    def test_context_from_metrics_by_date(self):
        context = InsightContext(
            latest_date="2024-01-01",
            metrics_by_date={"2024-01-01": {"days_on_market": 75}},
        )
        by_id = {i.id: i for i in generate_insights(context)}
        assert by_id["velocity"].headline == "Slow market velocity"
        assert by_id["velocity"].context == "averaging 75 days on market."


def test_entry_level_spread():
    insight = generate_spread_insight(470000, 500000)
    assert insight.headline == "Entry-level homes dominating sales"
    assert "$30,000 below median" in insight.context


def test_velocity_seasonal_surprise():
    insight = generate_velocity_insight(sales=80, sales_yoy_change=-20.0, dom=45, month=5)
    assert insight.headline == "Sales volume declining"
    assert "Even though May is typically a strong month" in insight.talking_point

    insight = generate_velocity_insight(sales=60, sales_yoy_change=12.0, dom=45, month=12)
    assert insight.headline == "Steady market velocity"
    assert "Unusually strong activity for December" in insight.talking_point


def test_prioritize_insights():
    records = _records({
        "2023-05-01": {"median_price": 450000},
        "2024-05-01": {"median_price": 462000, "active_listings": 250, "sales_count": 50},
    })
    insights = generate_insights(build_insight_context(records))
    ranked = prioritize_insights(insights)
    priorities = [i.priority for i in ranked]
    assert priorities == sorted(priorities, key=["high", "medium", "low"].index)
    assert len(prioritize_insights(insights, top_n=2)) == 2


def test_no_records_gives_no_insights():
    assert generate_insights(build_insight_context([])) == []
