"""
Sheet loader for uploaded market reports.

Turns workbook bytes (xlsx/xlsm/xls), delimited text or a DataFrame into raw
rows: header-less, untyped, one list per sheet row. Header detection happens
later, in the extractor.
"""

from __future__ import annotations

import csv
import io
from pathlib import Path
from typing import Any, BinaryIO, Union

import pandas as pd

from market_insights.logger import get_logger

logger = get_logger(__name__)

ALLOWED_SUFFIXES = (".csv", ".txt", ".xlsx", ".xlsm", ".xls")
CSV_ENCODINGS = ["utf-8-sig", "latin-1", "cp1252"]
CSV_DELIMITERS = [",", ";", "\t", "|"]

_ZIP_MAGIC = b"PK\x03\x04"
_OLE_MAGIC = b"\xd0\xcf\x11\xe0"

SheetSource = Union[bytes, bytearray, str, Path, BinaryIO, pd.DataFrame]


def _read_bytes(source: SheetSource) -> tuple[bytes, str | None]:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source), None
    if isinstance(source, (str, Path)):
        path = Path(source)
        return path.read_bytes(), path.name
    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, str):
            data = data.encode("utf-8")
        return data, getattr(source, "name", None)
    raise ValueError(f"Unsupported source type: {type(source).__name__}")


def detect_format(data: bytes, filename: str | None = None) -> str:
    """
    Guess the sheet format from magic bytes, falling back to the file suffix.

    Returns:
        "xlsx", "xls" or "csv".
    """
    if data.startswith(_ZIP_MAGIC):
        return "xlsx"
    if data.startswith(_OLE_MAGIC):
        return "xls"

    suffix = Path(filename).suffix.lower() if filename else ""
    if suffix in (".xlsx", ".xlsm"):
        return "xlsx"
    if suffix == ".xls":
        return "xls"
    if suffix and suffix not in ALLOWED_SUFFIXES:
        raise ValueError(f"Unsupported file format: {suffix}")
    return "csv"


def sniff_csv_delimiter(sample: str) -> str | None:
    if not sample:
        return None
    try:
        dialect = csv.Sniffer().sniff(sample, delimiters=CSV_DELIMITERS)
        return dialect.delimiter
    except csv.Error:
        return None


def _decode(data: bytes) -> str:
    last_error: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as exc:
            last_error = exc
            continue
    raise ValueError("Failed to decode delimited text") from last_error


def load_csv_frame(data: bytes) -> pd.DataFrame:
    """Read delimited text into an all-string frame without a header row."""
    text = _decode(data)
    if not text.strip():
        return pd.DataFrame()

    sep = sniff_csv_delimiter(text[:8192]) or ","
    # Ragged rows: size the frame to the widest line
    width = max((len(row) for row in csv.reader(io.StringIO(text), delimiter=sep)), default=0)
    if width == 0:
        return pd.DataFrame()

    return pd.read_csv(
        io.StringIO(text),
        sep=sep,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=False,
    )


def load_excel_frame(data: bytes, fmt: str, sheet_name: str | int = 0) -> pd.DataFrame:
    """Read one worksheet into an untyped frame without a header row."""
    engine = "openpyxl" if fmt == "xlsx" else None
    with pd.ExcelFile(io.BytesIO(data), engine=engine) as workbook:
        if not workbook.sheet_names:
            raise ValueError("No sheets found in the file")
        return workbook.parse(sheet_name=sheet_name, header=None, dtype=object)


def frame_to_rows(frame: pd.DataFrame, *, include_columns: bool = False) -> list[list[Any]]:
    """
    Convert a frame into raw rows with None for missing cells.

    Args:
        frame: Source frame.
        include_columns: Prepend the column labels as the first row
                         (for frames that already carry headers).
    """
    cleaned = frame.astype(object).where(frame.notna(), None)
    rows = cleaned.values.tolist()
    if include_columns:
        rows.insert(0, [str(column) for column in frame.columns])
    return rows


def load_raw_sheet(
    source: SheetSource,
    *,
    filename: str | None = None,
    sheet_name: str | int = 0,
) -> list[list[Any]]:
    """
    Load a report sheet as raw rows.

    Args:
        source: Raw bytes, a path, a binary file object or a DataFrame.
                DataFrame columns are treated as the first (header) row.
        filename: Optional name used to pick the format when bytes are ambiguous.
        sheet_name: Worksheet name or index for workbooks.

    Returns:
        List of rows; each row is a list of cell values (None when empty).

    Raises:
        ValueError: If the source cannot be read or has no sheets.
    """
    if isinstance(source, pd.DataFrame):
        return frame_to_rows(source, include_columns=True)

    data, source_name = _read_bytes(source)
    fmt = detect_format(data, filename or source_name)
    logger.debug(f"Loading {fmt} sheet ({len(data)} bytes)")

    if fmt == "csv":
        frame = load_csv_frame(data)
    else:
        frame = load_excel_frame(data, fmt, sheet_name=sheet_name)

    return frame_to_rows(frame)
