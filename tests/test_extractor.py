"""
Tests for sheet extraction: loading, header discovery, dates and records.
"""

import io
import sys
from datetime import date, datetime
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import pandas as pd
import pytest

from market_insights.extractor import (
    NO_DATE_WARNING,
    NO_METRICS_ERROR,
    build_manual_records,
    extract,
    extract_rows,
)
from market_insights.file_loader import detect_format, load_raw_sheet


def _by_metric(result):
    return {m.metric_type_id: m for m in result.metrics}


class TestExtractRows:
    """Tests for extraction from in-memory rows."""

    def test_basic_sheet(self):
        result = extract_rows([
            ["Date", "Median Sale Price", "Active Listings"],
            ["2024-01-01", "450000", "120"],
        ])
        assert result.success
        assert result.errors == []
        assert len(result.metrics) == 2

        records = _by_metric(result)
        assert records["median_price"].value == 450000.0
        assert records["active_listings"].value == 120.0
        for record in result.metrics:
            assert record.recorded_date == "2024-01-01"
            assert not record.is_outlier
            assert record.provenance == "imported"
        assert records["median_price"].display_name == "Median Sale Price"

    def test_banner_row_is_skipped(self):
        result = extract_rows([
            ["Monthly Market Report", None, None],
            ["Date", "Median Price", "Days on Market"],
            ["2024-01-01", 450000, 28],
            ["2024-02-01", 455000, 31],
        ])
        assert result.success
        assert result.header_row_index == 1
        assert len(result.metrics) == 4
        assert {m.recorded_date for m in result.metrics} == {"2024-01-01", "2024-02-01"}

    def test_ytd_columns_are_ignored(self):
        result = extract_rows([
            ["Date", "Closed Sales", "Closed Sales YTD"],
            ["2024-03-01", "40", "110"],
        ])
        assert [(m.metric_type_id, m.value) for m in result.metrics] == [("sales_count", 40.0)]

    def test_glued_ytd_label_does_not_overwrite_monthly_value(self):
        result = extract_rows([
            ["Date", "Closed Sales", "SalesYTD"],
            ["2024-03-01", "40", "110"],
        ])
        assert [(m.metric_type_id, m.value) for m in result.metrics] == [("sales_count", 40.0)]

    def test_month_and_year_columns(self):
        result = extract_rows([
            ["Month", "Year", "Median Price"],
            ["Jan", 2024, "$450,000"],
            ["February", "2024", "$460K"],
        ])
        assert [m.recorded_date for m in result.metrics] == ["2024-01-01", "2024-02-01"]
        assert [m.value for m in result.metrics] == [450000.0, 460000.0]
        assert NO_DATE_WARNING not in result.warnings

    def test_no_date_information_defaults_to_month(self):
        result = extract_rows(
            [["Median Price", "DOM"], [450000, 30]],
            reference_date=date(2024, 6, 15),
        )
        assert result.success
        assert result.warnings == [NO_DATE_WARNING]
        assert {m.recorded_date for m in result.metrics} == {"2024-06-01"}

    def test_unresolvable_date_drops_row(self):
        result = extract_rows([
            ["Date", "Median Price"],
            ["garbage", 450000],
            ["2024-02-01", 460000],
        ])
        assert len(result.metrics) == 1
        assert result.metrics[0].recorded_date == "2024-02-01"
        assert result.warnings == ['Row 2: Could not parse date "garbage"']

    def test_missing_date_drops_row(self):
        result = extract_rows([
            ["Date", "Median Price"],
            [None, 450000],
            ["2024-02-01", 460000],
        ])
        assert len(result.metrics) == 1
        assert result.warnings == ["Row 2: Missing date"]

    def test_unparseable_value_skips_only_that_metric(self):
        result = extract_rows([
            ["Date", "Median Price", "DOM"],
            ["2024-01-01", "abc", 30],
        ])
        assert [m.metric_type_id for m in result.metrics] == ["days_on_market"]
        assert result.warnings == ['Row 2: Could not parse value "abc" for Median Price']

    def test_rows_without_metric_values_are_skipped(self):
        result = extract_rows([
            ["Date", "Median Price"],
            ["2024-01-01", 450000],
            ["Source: MLS", None],
            [None, None],
        ])
        assert len(result.metrics) == 1
        assert result.warnings == []

    def test_outliers_are_flagged_not_dropped(self):
        result = extract_rows([["Date", "Median Price"], ["2024-01-01", 5000]])
        assert result.success
        record = result.metrics[0]
        assert record.value == 5000.0
        assert record.is_outlier
        assert record.outlier_reason == "Value 5000 is below minimum expected (10000 USD)"

    def test_percent_column(self):
        result = extract_rows([
            ["Date", "Sale-to-List %"],
            ["2024-01-01", 0.985],
            ["2024-02-01", "101%"],
        ])
        values = [m.value for m in result.metrics]
        assert values == [pytest.approx(0.985), pytest.approx(1.01)]
        assert not any(m.is_outlier for m in result.metrics)

    def test_bare_number_under_percent_header_is_kept_as_is(self):
        result = extract_rows([["Date", "Sale-to-List %"], ["2024-01-01", 98.5]])
        record = result.metrics[0]
        assert record.value == 98.5
        assert record.is_outlier

    def test_no_metric_columns(self):
        result = extract_rows([["Foo", "Bar"], ["1", "2"]])
        assert not result.success
        assert result.errors == [NO_METRICS_ERROR]
        assert "Median Price, Days on Market, Active Listings" in NO_METRICS_ERROR

    def test_empty_sheet(self):
        for rows in ([], [["Date", "Median Price"]], [[None, None]]):
            result = extract_rows(rows)
            assert not result.success
            assert result.errors == ["No data found in the sheet"]

    def test_no_valid_metrics(self):
        result = extract_rows([["Date", "Median Price"], ["2024-01-01", "n/a?"]])
        assert not result.success
        assert result.errors == ["No valid metrics could be extracted from the file"]

    def test_to_dataframe(self):
        result = extract_rows([
            ["Date", "Median Price", "DOM"],
            ["2024-01-01", 450000, 30],
        ])
        frame = result.to_dataframe()
        assert len(frame) == 2
        assert list(frame["metric_type_id"]) == ["median_price", "days_on_market"]


class TestExtractSources:
    """Tests for extract() over bytes, paths and frames."""

    def test_csv_bytes(self):
        data = b"Date,Median Sale Price,Active Listings\n2024-01-01,450000,120\n"
        result = extract(data, filename="report.csv")
        assert result.success
        assert sorted(m.value for m in result.metrics) == [120.0, 450000.0]

    def test_semicolon_csv_path(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_text("Date;Median Price;DOM\n2024-01-01;450000;30\n2024-02-01;455000;28\n")
        result = extract(path)
        assert result.success
        assert len(result.metrics) == 4

    def test_xlsx_bytes(self):
        frame = pd.DataFrame({
            "Date": [datetime(2024, 1, 1), datetime(2024, 2, 1)],
            "Median Sale Price": [450000, 455000],
            "Active Listings": [120, 118],
        })
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
            frame.to_excel(writer, index=False, sheet_name="Report")

        result = extract(buffer.getvalue())
        assert result.success
        assert len(result.metrics) == 4
        assert {m.recorded_date for m in result.metrics} == {"2024-01-01", "2024-02-01"}

    def test_xlsx_percent_formatted_ratio(self):
        frame = pd.DataFrame({
            "Date": [datetime(2024, 1, 1), datetime(2024, 2, 1)],
            "Sale-to-List %": [0.985, 1.012],
        })
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="xlsxwriter") as writer:
            frame.to_excel(writer, index=False, sheet_name="Report")
            percent = writer.book.add_format({"num_format": "0.0%"})
            writer.sheets["Report"].set_column(1, 1, 14, percent)

        result = extract(buffer.getvalue())
        assert result.success
        values = [m.value for m in result.metrics]
        assert values == [pytest.approx(0.985), pytest.approx(1.012)]
        assert not any(m.is_outlier for m in result.metrics)

    def test_dataframe_source(self):
        frame = pd.DataFrame({"Date": ["2024-01-01"], "Median Price": [450000]})
        result = extract(frame)
        assert result.success
        assert result.metrics[0].value == 450000.0

    def test_corrupt_workbook(self):
        result = extract(b"PK\x03\x04not really a workbook")
        assert not result.success
        assert result.metrics == []
        assert result.errors[0].startswith("Failed to parse file: ")

    def test_unsupported_format(self):
        result = extract(b"%PDF-1.4", filename="report.pdf")
        assert result.errors == ["Failed to parse file: Unsupported file format: .pdf"]


def test_detect_format():
    assert detect_format(b"PK\x03\x04rest") == "xlsx"
    assert detect_format(b"\xd0\xcf\x11\xe0rest") == "xls"
    assert detect_format(b"a,b\n1,2", "data.csv") == "csv"
    assert detect_format(b"a,b\n1,2") == "csv"


def test_load_raw_sheet_ragged_csv():
    rows = load_raw_sheet(b"Market Report\nDate,Median Price\n2024-01-01,450000\n")
    assert rows[0][0] == "Market Report"
    assert rows[1] == ["Date", "Median Price"]
    assert len(rows) == 3


class TestManualEntry:
    """Tests for hand-entered monthly metrics."""

    def test_build_manual_records(self):
        records = build_manual_records(
            {"median_price": "450,000", "days_on_market": "", "bogus": 3, "sales_count": 42},
            "2024-03",
        )
        assert [r.metric_type_id for r in records] == ["median_price", "sales_count"]
        assert all(r.recorded_date == "2024-03-01" for r in records)
        assert all(r.provenance == "manual" for r in records)

    def test_manual_records_are_validated(self):
        records = build_manual_records({"list_to_sale_ratio": 1.6}, "2024-03-15")
        assert records[0].recorded_date == "2024-03-01"
        assert records[0].is_outlier

    def test_manual_requires_month(self):
        with pytest.raises(ValueError, match="Report month is required"):
            build_manual_records({"median_price": 450000}, "")
        with pytest.raises(ValueError):
            build_manual_records({"median_price": 450000}, "someday")

    def test_manual_requires_a_value(self):
        with pytest.raises(ValueError, match="at least one metric value"):
            build_manual_records({"median_price": "", "bogus": 1}, "2024-03")
