"""
Shared numeric parsing utilities for report cells with currencies and percents.

Percent values are normalized to decimals (e.g., "98%" -> 0.98).
Parenthesized values are negative (e.g., "(1,234)" -> -1234.0).
"""

from __future__ import annotations

import numbers
import re
from typing import Any

import pandas as pd

_NULL_TOKENS = {"", "null", "n/a", "na", "none", "nan", "-", "--"}
_CURRENCY_CODES = ["usd", "cad", "eur", "gbp", "aud"]
_CURRENCY_SYMBOLS = r"[$€£¥]"
# "$450K", "1.2M"
_SCALE_SUFFIXES = {"k": 1_000.0, "m": 1_000_000.0, "b": 1_000_000_000.0}


def _strip_currency_tokens(text: str) -> str:
    pattern = r"\b(" + "|".join(_CURRENCY_CODES) + r")\b"
    return re.sub(pattern, "", text, flags=re.IGNORECASE)


def _normalize_number_string(text: str) -> str:
    cleaned = re.sub(_CURRENCY_SYMBOLS, "", text)
    cleaned = _strip_currency_tokens(cleaned)
    cleaned = cleaned.replace("%", "")
    # Trailing unit words such as "days" or "mo"
    cleaned = re.sub(r"\s+[A-Za-z][A-Za-z./\s]*$", "", cleaned.strip())
    cleaned = cleaned.replace(" ", "").replace("\u00a0", "")

    # Handle European decimals: "1.234,56" -> "1234.56"
    if "," in cleaned and "." in cleaned:
        if cleaned.rfind(",") > cleaned.rfind("."):
            cleaned = cleaned.replace(".", "")
            cleaned = cleaned.replace(",", ".")
    elif "," in cleaned and "." not in cleaned:
        # Treat comma as decimal if it looks like cents (one or two digits)
        parts = cleaned.split(",")
        if len(parts) == 2 and len(parts[-1]) in (1, 2):
            cleaned = ".".join(parts)
        else:
            cleaned = cleaned.replace(",", "")

    cleaned = cleaned.replace(",", "")
    return cleaned.strip()


def is_blank(value: Any) -> bool:
    """True for None, NaN/NaT and whitespace-only strings."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def parse_numeric_value(value: Any) -> float | None:
    if is_blank(value):
        return None

    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return float(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.lower() in _NULL_TOKENS:
        return None

    is_negative = False
    if text.startswith("(") and text.endswith(")"):
        is_negative = True
        text = text[1:-1].strip()
    if text.startswith("-"):
        is_negative = True
        text = text[1:].strip()
    text = text.lstrip("+")

    is_percentage = "%" in text

    cleaned = _normalize_number_string(text)
    if cleaned.lower() in _NULL_TOKENS:
        return None

    multiplier = 1.0
    if cleaned[-1:].lower() in _SCALE_SUFFIXES and cleaned[:-1]:
        multiplier = _SCALE_SUFFIXES[cleaned[-1].lower()]
        cleaned = cleaned[:-1]

    try:
        numeric = float(cleaned) * multiplier
    except ValueError:
        return None

    if is_percentage:
        numeric = numeric / 100.0

    if is_negative:
        numeric = -abs(numeric)

    return numeric


def parse_numeric_series(series: pd.Series) -> pd.Series:
    return series.apply(parse_numeric_value)
