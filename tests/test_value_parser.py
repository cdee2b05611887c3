"""
Unit tests for shared numeric value parser.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd
import pytest

from market_insights.value_parser import is_blank, parse_numeric_series, parse_numeric_value


def test_parse_currency():
    assert parse_numeric_value("$450,000") == 450000.0
    assert parse_numeric_value("USD 450,000") == 450000.0
    assert parse_numeric_value("€1.234,56") == 1234.56


def test_parse_scale_suffix():
    assert parse_numeric_value("$450K") == 450000.0
    assert parse_numeric_value("$1.2M") == pytest.approx(1_200_000.0)


def test_parse_percent_decimal():
    assert parse_numeric_value("98.5%") == pytest.approx(0.985)
    assert parse_numeric_value("101 %") == pytest.approx(1.01)


def test_parse_trailing_units():
    assert parse_numeric_value("31 days") == 31.0
    assert parse_numeric_value("4.2 mo") == 4.2


def test_parse_negatives():
    assert parse_numeric_value("(1,234)") == -1234.0
    assert parse_numeric_value("-2.5%") == pytest.approx(-0.025)


def test_parse_separators():
    assert parse_numeric_value("1,234") == 1234.0
    assert parse_numeric_value("1,5") == 1.5


def test_numbers_pass_through():
    assert parse_numeric_value(120) == 120.0
    assert parse_numeric_value(0.985) == 0.985
    assert parse_numeric_value(True) is None
    assert parse_numeric_value(float("nan")) is None


def test_null_and_garbage():
    for token in ("", "  ", "n/a", "N/A", "-", "--", "null", "abc", None):
        assert parse_numeric_value(token) is None


def test_is_blank():
    assert is_blank(None)
    assert is_blank("   ")
    assert is_blank(float("nan"))
    assert is_blank(pd.NaT)
    assert not is_blank(0)
    assert not is_blank("x")


def test_parse_series():
    parsed = parse_numeric_series(pd.Series(["$1,000", "n/a", "50%"]))
    assert parsed.iloc[0] == 1000.0
    assert parsed.iloc[1] is None or pd.isna(parsed.iloc[1])
    assert parsed.iloc[2] == pytest.approx(0.5)
