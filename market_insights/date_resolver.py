"""
Date resolution for report cells of unknown shape.

Every resolver returns a canonical ``YYYY-MM-DD`` string or None; monthly
forms ("Jan 2024", month/year column pairs) are anchored to day 1.
"""

from __future__ import annotations

import numbers
import re
import warnings
from datetime import date, datetime
from typing import Any

import numpy as np
import pandas as pd
from openpyxl.utils.datetime import from_excel

from market_insights.value_parser import is_blank

_MONTH_LOOKUP = {
    "jan": 1, "january": 1,
    "feb": 2, "february": 2,
    "mar": 3, "march": 3,
    "apr": 4, "april": 4,
    "may": 5,
    "jun": 6, "june": 6,
    "jul": 7, "july": 7,
    "aug": 8, "august": 8,
    "sep": 9, "sept": 9, "september": 9,
    "oct": 10, "october": 10,
    "nov": 11, "november": 11,
    "dec": 12, "december": 12,
}

_ISO_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})")
_US_PATTERN = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})")
_MONTH_YEAR_PATTERN = re.compile(r"^([A-Za-z]+)\.?[\s,/-]+(\d{4})\b")
_SERIAL_PATTERN = re.compile(r"^\d{5}(\.\d+)?$")

# Largest serial spreadsheets accept (9999-12-31)
_MAX_SERIAL = 2_958_465


def _format(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def _from_serial(serial: float) -> str | None:
    if serial <= 0 or serial > _MAX_SERIAL:
        return None
    try:
        converted = from_excel(serial)
    except (ValueError, OverflowError):
        return None
    if converted is None:
        return None
    return converted.date().isoformat() if isinstance(converted, datetime) else None


def _from_string(text: str) -> str | None:
    iso = _ISO_PATTERN.match(text)
    if iso:
        return _format(int(iso.group(1)), int(iso.group(2)), int(iso.group(3)))

    us = _US_PATTERN.match(text)
    if us:
        return _format(int(us.group(3)), int(us.group(1)), int(us.group(2)))

    month_year = _MONTH_YEAR_PATTERN.match(text)
    if month_year:
        month = _MONTH_LOOKUP.get(month_year.group(1).lower())
        if month:
            return _format(int(month_year.group(2)), month, 1)

    if _SERIAL_PATTERN.match(text):
        return _from_serial(float(text))

    # Last resort: let pandas try
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(text, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date().isoformat()


def resolve_date(value: Any) -> str | None:
    """
    Resolve a cell to ``YYYY-MM-DD``.

    Resolution order: date-typed value, spreadsheet serial number, ISO string,
    US ``M/D/YYYY`` string, ``Month YYYY`` string, generic parse.

    Args:
        value: Raw cell value.

    Returns:
        Canonical date string, or None if nothing resolves to a valid date.
    """
    if is_blank(value):
        return None

    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, np.datetime64):
        return pd.Timestamp(value).date().isoformat()

    if isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        return _from_serial(float(value))

    if isinstance(value, str):
        return _from_string(value.strip())

    return None


def resolve_month(value: Any) -> int | None:
    """Month number from 1-12 numerics or month names/abbreviations."""
    if is_blank(value) or isinstance(value, bool):
        return None

    if isinstance(value, numbers.Real):
        number = float(value)
        if number.is_integer() and 1 <= number <= 12:
            return int(number)
        return None

    if isinstance(value, str):
        token = value.strip().lower().rstrip(".")
        if re.fullmatch(r"\d{1,2}", token):
            number = int(token)
            return number if 1 <= number <= 12 else None
        return _MONTH_LOOKUP.get(token)

    return None


def resolve_year(value: Any) -> int | None:
    """Year from any numeric value >= 1000."""
    if is_blank(value) or isinstance(value, bool):
        return None

    if isinstance(value, numbers.Real):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None

    if number != number or number < 1000 or number > 9999:
        return None
    return int(number)


def resolve_month_year(month: Any, year: Any) -> str | None:
    """Combine separate month and year cells into ``YYYY-MM-01``."""
    month_number = resolve_month(month)
    year_number = resolve_year(year)
    if month_number is None or year_number is None:
        return None
    return _format(year_number, month_number, 1)


def first_of_month(reference: date | None = None) -> str:
    """First day of the reference (default: current) month."""
    reference = reference or date.today()
    return reference.replace(day=1).isoformat()


def month_of(date_str: str) -> int:
    return pd.Timestamp(date_str).month


def shift_months(date_str: str, months: int) -> str:
    """Move a canonical date by whole calendar months (clamped to month end)."""
    shifted = pd.Timestamp(date_str) + pd.DateOffset(months=months)
    return shifted.date().isoformat()
