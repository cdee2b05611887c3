"""
Header Parser Module - Column Label Classification

Maps arbitrary report column labels to canonical metric ids via the alias
table, and recognises date-bearing columns (full date, or month/year pairs).
Cumulative YTD columns are recognised only so they can be skipped.

Example headers:
- "Median Sale Price"   -> metric "median_price"
- "Avg DOM"             -> metric "days_on_market"
- "Closed Sales YTD"    -> ytd (never a metric)
- "Report Month"        -> month column

When the first row of a sheet is a banner rather than headers,
``find_header_row`` scores the first rows and adopts the best candidate.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Mapping

import pandas as pd

from market_insights.config import (
    DATE_HEADER_WORDS,
    DATE_HEADERS,
    HEADER_ALIASES,
    HEADER_SCAN_ROWS,
    MONTH_HEADERS,
    YEAR_HEADERS,
    YTD_MARKERS,
)
from market_insights.value_parser import is_blank

if TYPE_CHECKING:
    from collections.abc import Sequence

# Reverse containment ("median sale price" contains "price") needs this many chars
_MIN_REVERSE_MATCH_LENGTH = 3
# Aliases this short ("dom", "mos") only match as whole words
_SHORT_ALIAS_LENGTH = 4


def _contains_word(token: str, text: str) -> bool:
    return re.search(rf"(?<![a-z0-9]){re.escape(token)}(?![a-z0-9])", text) is not None


def _alias_in(alias: str, text: str) -> bool:
    if len(alias) <= _SHORT_ALIAS_LENGTH:
        return _contains_word(alias, text)
    return alias in text


def normalize_header(header: Any) -> str:
    """Lowercase, trim, and turn underscores/hyphens into single spaces."""
    if is_blank(header):
        return ""
    if isinstance(header, float) and header.is_integer():
        header = int(header)
    text = str(header).lower().strip()
    text = re.sub(r"[_-]", " ", text)
    return " ".join(text.split())


@dataclass
class HeaderMatch:
    """Structured result from classifying a header string."""

    raw_header: str
    normalized: str = ""
    kind: str = "unknown"  # "metric", "date", "month", "year", "ytd", "blank", "unknown"
    metric_type_id: str | None = None
    matched_alias: str = ""
    is_percentage: bool = False  # True if the label carries a "%"


@dataclass
class HeaderMapping:
    """Column roles for one candidate header row (keyed by column index)."""

    headers: list[str] = field(default_factory=list)
    metric_columns: dict[int, str] = field(default_factory=dict)
    date_column: int | None = None
    month_column: int | None = None
    year_column: int | None = None
    skipped_columns: list[int] = field(default_factory=list)

    @property
    def has_month_year(self) -> bool:
        return self.month_column is not None and self.year_column is not None

    @property
    def has_date_info(self) -> bool:
        return self.date_column is not None or self.has_month_year

    @property
    def score(self) -> int:
        """Header-row candidate score: metrics + date column + month/year pair."""
        return (
            len(self.metric_columns)
            + (1 if self.date_column is not None else 0)
            + (1 if self.has_month_year else 0)
        )


class HeaderParser:
    """
    Classifies report headers against the metric alias table.

    Matching is case-insensitive substring matching in either direction;
    the first metric (in alias-table order) with a matching alias wins.
    """

    def __init__(self, aliases: Mapping[str, Sequence[str]] | None = None):
        """
        Initialize the HeaderParser.

        Args:
            aliases: Optional custom metric-id -> aliases table.
                     If None, uses the configured HEADER_ALIASES.
        """
        source = aliases if aliases is not None else HEADER_ALIASES
        self.aliases: dict[str, tuple[str, ...]] = {
            metric: tuple(normalize_header(a) for a in values if normalize_header(a))
            for metric, values in source.items()
        }

    def _is_ytd(self, normalized: str) -> bool:
        # "ytd" also matches glued labels like "salesytd"
        return any(
            marker in normalized if marker == "ytd" else _contains_word(marker, normalized)
            for marker in YTD_MARKERS
        )

    def _has_date_word(self, normalized: str) -> bool:
        return any(_contains_word(word, normalized) for word in DATE_HEADER_WORDS)

    def find_metric_type(self, normalized: str) -> tuple[str | None, str]:
        """
        Return (metric_type_id, alias) for a normalized header, or (None, "").

        Aliases contained in the header are tried first across the whole
        table, then headers contained in an alias ("price" -> median price).
        """
        if not normalized:
            return None, ""
        for metric, aliases in self.aliases.items():
            for alias in aliases:
                if _alias_in(alias, normalized):
                    return metric, alias
        if len(normalized) >= _MIN_REVERSE_MATCH_LENGTH:
            for metric, aliases in self.aliases.items():
                for alias in aliases:
                    if normalized in alias:
                        return metric, alias
        return None, ""

    def parse(self, header: Any) -> HeaderMatch:
        """
        Classify a single header.

        Args:
            header: The raw header cell.

        Returns:
            HeaderMatch describing the column role.
        """
        raw = "" if is_blank(header) else str(header).strip()
        normalized = normalize_header(header)
        result = HeaderMatch(raw_header=raw, normalized=normalized)

        if not normalized:
            result.kind = "blank"
            return result

        if self._is_ytd(normalized):
            result.kind = "ytd"
            return result

        if normalized in MONTH_HEADERS:
            result.kind = "month"
            return result

        if normalized in YEAR_HEADERS:
            result.kind = "year"
            return result

        if normalized in DATE_HEADERS:
            result.kind = "date"
            return result

        metric, alias = self.find_metric_type(normalized)
        if metric:
            result.kind = "metric"
            result.metric_type_id = metric
            result.matched_alias = alias
            result.is_percentage = "%" in raw
            return result

        if self._has_date_word(normalized):
            result.kind = "date"

        return result

    def parse_all(self, headers: Sequence[Any]) -> list[HeaderMatch]:
        return [self.parse(header) for header in headers]

    def map_headers(self, headers: Sequence[Any]) -> HeaderMapping:
        """
        Assign column roles for a candidate header row.

        The first date, month and year columns win; every metric column is kept.
        """
        matches = self.parse_all(headers)
        mapping = HeaderMapping(headers=[m.raw_header for m in matches])

        for idx, match in enumerate(matches):
            if match.kind == "metric":
                mapping.metric_columns[idx] = match.metric_type_id
            elif match.kind == "date" and mapping.date_column is None:
                mapping.date_column = idx
            elif match.kind == "month" and mapping.month_column is None:
                mapping.month_column = idx
            elif match.kind == "year" and mapping.year_column is None:
                mapping.year_column = idx
            elif match.kind == "ytd":
                mapping.skipped_columns.append(idx)

        return mapping

    def find_header_row(
        self,
        rows: Sequence[Sequence[Any]],
        max_rows: int = HEADER_SCAN_ROWS,
    ) -> tuple[int, HeaderMapping] | None:
        """
        Find the most header-like row among the first ``max_rows`` rows.

        Args:
            rows: Raw sheet rows.
            max_rows: How many leading rows to consider.

        Returns:
            (row_index, mapping) for the best-scoring row, or None when no
            row scores above zero. Ties keep the earliest row.
        """
        best: tuple[int, HeaderMapping] | None = None
        best_score = 0

        for idx, row in enumerate(rows[:max_rows]):
            if not row or all(is_blank(cell) for cell in row):
                continue
            mapping = self.map_headers(row)
            if mapping.score > best_score:
                best_score = mapping.score
                best = (idx, mapping)

        return best

    def generate_mapping_report(self, results: list[HeaderMatch]) -> pd.DataFrame:
        """
        Generate a DataFrame describing how each header was understood.

        Args:
            results: List of HeaderMatch objects from parsing.

        Returns:
            DataFrame with one row per header.
        """
        data = []
        for r in results:
            data.append({
                "Raw_Header": r.raw_header,
                "Normalized_Header": r.normalized,
                "Column_Role": r.kind,
                "Metric_Type_Id": r.metric_type_id or "",
                "Matched_Alias": r.matched_alias,
                "Is_Percentage": r.is_percentage,
            })

        return pd.DataFrame(data)

    def get_parse_statistics(self, results: list[HeaderMatch]) -> dict:
        """
        Summarize header classification.

        Args:
            results: List of HeaderMatch objects.

        Returns:
            Dictionary with statistics.
        """
        total = len(results)
        if total == 0:
            return {
                "total_headers": 0,
                "mapped_metrics": 0,
                "role_distribution": {},
                "unmapped_headers": [],
            }

        role_counts: dict[str, int] = {}
        for r in results:
            role_counts[r.kind] = role_counts.get(r.kind, 0) + 1

        return {
            "total_headers": total,
            "mapped_metrics": role_counts.get("metric", 0),
            "role_distribution": role_counts,
            "unmapped_headers": [r.raw_header for r in results if r.kind == "unknown"],
        }
