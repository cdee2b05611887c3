"""
Row Extractor - raw report sheets to validated MetricRecords.

Pipeline per sheet:
1. Load raw rows (file_loader)
2. Map the first row's headers; fall back to header-row discovery
3. Resolve each row's date (date column, month/year pair, or default month)
4. Parse and validate every non-empty metric cell

Problems with individual rows become warnings; problems with the whole
sheet become errors. Nothing here raises for bad input data.
"""

from __future__ import annotations

import re
from datetime import date
from typing import TYPE_CHECKING, Any, Mapping

from market_insights.config import EXAMPLE_HEADERS
from market_insights.date_resolver import first_of_month, resolve_date, resolve_month_year
from market_insights.file_loader import load_raw_sheet
from market_insights.header_parser import HeaderMapping, HeaderParser
from market_insights.logger import debug_watcher, get_logger
from market_insights.metric_catalog import METRIC_TYPE_IDS, get_display_name
from market_insights.metric_validator import validate_metric
from market_insights.models import ExtractionResult, MetricRecord
from market_insights.value_parser import is_blank, parse_numeric_value

if TYPE_CHECKING:
    from collections.abc import Sequence

    from market_insights.file_loader import SheetSource

logger = get_logger(__name__)

NO_METRICS_ERROR = (
    "No recognizable metric columns found. Expected columns like: "
    + ", ".join(EXAMPLE_HEADERS)
    + ", etc."
)
NO_DATE_WARNING = "No date column found - using current date as default"

_YEAR_MONTH_PATTERN = re.compile(r"^(\d{4})-(\d{1,2})$")


def _cell(row: Sequence[Any], idx: int | None) -> Any:
    if idx is None or idx >= len(row):
        return None
    return row[idx]


def _display(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _resolve_row_date(
    row: Sequence[Any],
    mapping: HeaderMapping,
    default_date: str,
) -> tuple[str | None, str | None]:
    """Return (recorded_date, problem) for one body row."""
    if mapping.has_month_year:
        month = _cell(row, mapping.month_column)
        year = _cell(row, mapping.year_column)
        if not is_blank(month) and not is_blank(year):
            resolved = resolve_month_year(month, year)
            if resolved is None:
                return None, f'Could not parse month/year "{_display(month)}" "{_display(year)}"'
            return resolved, None

    if mapping.date_column is not None:
        raw = _cell(row, mapping.date_column)
        if not is_blank(raw):
            resolved = resolve_date(raw)
            if resolved is None:
                return None, f'Could not parse date "{_display(raw)}"'
            return resolved, None

    if mapping.has_date_info:
        return None, "Missing date"

    return default_date, None


def _select_header_row(
    parser: HeaderParser,
    rows: list[list[Any]],
) -> tuple[int, HeaderMapping]:
    mapping = parser.map_headers(rows[0])
    if mapping.metric_columns:
        return 0, mapping

    discovered = parser.find_header_row(rows)
    if discovered is None:
        return 0, mapping

    header_idx, discovered_mapping = discovered
    if header_idx != 0:
        logger.info(f"Adopted row {header_idx + 1} as the header row")
    return header_idx, discovered_mapping


def extract_rows(
    rows: Sequence[Sequence[Any]],
    *,
    reference_date: date | None = None,
    parser: HeaderParser | None = None,
) -> ExtractionResult:
    """
    Extract metric records from in-memory sheet rows.

    Args:
        rows: Raw rows; the first row holds the candidate headers.
        reference_date: "Today" for the default-month fallback.
        parser: Optional HeaderParser (e.g. with a custom alias table).

    Returns:
        ExtractionResult with records, warnings and errors.
    """
    result = ExtractionResult()
    parser = parser or HeaderParser()

    sheet = [list(row) for row in rows]
    # Leading blank rows still count toward reported sheet row numbers
    leading_blank = 0
    while leading_blank < len(sheet) and all(is_blank(cell) for cell in sheet[leading_blank]):
        leading_blank += 1
    sheet = sheet[leading_blank:]

    if len(sheet) < 2:
        result.errors.append("No data found in the sheet")
        return result

    header_idx, mapping = _select_header_row(parser, sheet)
    result.header_row_index = leading_blank + header_idx

    if not mapping.has_date_info:
        result.warnings.append(NO_DATE_WARNING)

    if not mapping.metric_columns:
        result.errors.append(NO_METRICS_ERROR)
        return result

    if mapping.skipped_columns:
        logger.debug(f"Skipping YTD columns: {[mapping.headers[i] for i in mapping.skipped_columns]}")

    default_date = first_of_month(reference_date)
    body_start = header_idx + 1

    for offset, row in enumerate(sheet[body_start:]):
        sheet_row = leading_blank + body_start + offset + 1

        metric_cells = [
            (idx, metric_id, _cell(row, idx))
            for idx, metric_id in mapping.metric_columns.items()
        ]
        if all(is_blank(raw) for _, _, raw in metric_cells):
            continue

        recorded_date, problem = _resolve_row_date(row, mapping, default_date)
        if recorded_date is None:
            result.warnings.append(f"Row {sheet_row}: {problem}")
            continue

        for idx, metric_id, raw in metric_cells:
            if is_blank(raw):
                continue

            value = parse_numeric_value(raw)
            if value is None:
                result.warnings.append(
                    f'Row {sheet_row}: Could not parse value "{_display(raw)}" for {mapping.headers[idx]}'
                )
                continue

            validation = validate_metric(metric_id, value)
            result.metrics.append(
                MetricRecord(
                    metric_type_id=metric_id,
                    value=value,
                    recorded_date=recorded_date,
                    is_outlier=validation.is_outlier,
                    outlier_reason=validation.reason,
                    provenance="imported",
                    display_name=get_display_name(metric_id),
                )
            )

    for warning in result.warnings:
        logger.debug(warning)

    if result.metrics:
        result.success = True
        outliers = sum(1 for m in result.metrics if m.is_outlier)
        logger.info(
            f"Extracted {len(result.metrics)} records "
            f"({outliers} flagged, {len(result.warnings)} warnings)"
        )
    else:
        result.errors.append("No valid metrics could be extracted from the file")

    return result


@debug_watcher
def extract(
    source: SheetSource,
    *,
    filename: str | None = None,
    sheet_name: str | int = 0,
    reference_date: date | None = None,
) -> ExtractionResult:
    """
    Extract metric records from an uploaded report.

    Args:
        source: Workbook/CSV bytes, a path, a binary file object or a DataFrame.
        filename: Optional original file name (format hint for bytes).
        sheet_name: Worksheet to read; defaults to the first.
        reference_date: "Today" for the default-month fallback.

    Returns:
        ExtractionResult. Load failures are reported in ``errors``.
    """
    try:
        rows = load_raw_sheet(source, filename=filename, sheet_name=sheet_name)
    except Exception as e:
        logger.warning(f"Failed to load sheet: {type(e).__name__}: {e}")
        result = ExtractionResult()
        result.errors.append(f"Failed to parse file: {e}")
        return result

    return extract_rows(rows, reference_date=reference_date)


def _resolve_recorded_month(recorded_month: Any) -> str:
    if is_blank(recorded_month):
        raise ValueError("Report month is required")

    text = str(recorded_month).strip() if isinstance(recorded_month, str) else recorded_month
    if isinstance(text, str):
        match = _YEAR_MONTH_PATTERN.match(text)
        if match:
            resolved = resolve_month_year(match.group(2), match.group(1))
            if resolved:
                return resolved

    resolved = resolve_date(text)
    if resolved is None:
        raise ValueError(f"Invalid report month: {recorded_month}")
    return first_of_month(date.fromisoformat(resolved))


def build_manual_records(
    values: Mapping[str, Any],
    recorded_month: Any,
) -> list[MetricRecord]:
    """
    Build validated records from a hand-entered month of metrics.

    Args:
        values: Metric id -> raw value. Unknown ids, blank and unparseable
                values are ignored.
        recorded_month: "YYYY-MM" (or any resolvable date); anchored to day 1.

    Returns:
        Records with provenance "manual", in catalog order.

    Raises:
        ValueError: If the month is missing/invalid or no value is usable.
    """
    recorded_date = _resolve_recorded_month(recorded_month)

    records: list[MetricRecord] = []
    for metric_id in METRIC_TYPE_IDS:
        raw = values.get(metric_id)
        if is_blank(raw):
            continue
        value = parse_numeric_value(raw)
        if value is None:
            logger.debug(f"Ignoring unparseable manual value for {metric_id}: {raw!r}")
            continue

        validation = validate_metric(metric_id, value)
        records.append(
            MetricRecord(
                metric_type_id=metric_id,
                value=value,
                recorded_date=recorded_date,
                is_outlier=validation.is_outlier,
                outlier_reason=validation.reason,
                provenance="manual",
                display_name=get_display_name(metric_id),
            )
        )

    if not records:
        raise ValueError("Please enter at least one metric value")

    return records
