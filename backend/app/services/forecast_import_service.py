r"""backend\app\services\forecast_import_service.py

Import monthly forecasts from an Excel workbook.

The workbook layout is loose: somewhere in the first five rows there is a
header row whose part-number column is recognisable (a part-number cell or a
"drawing"/図番/品番 header).  Month columns follow it, labelled ``8月``,
``Aug``, ``2025/8``, ``8`` or an actual date.
"""

from __future__ import annotations

import io
import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, List, Optional

import pandas as pd

from .demand import coerce_int
from .store import DataStore

LOGGER = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 5
SHEET_NAME_HINTS = ("forecast", "予測", "計画")
DRAWING_HEADER_HINTS = ("drawing", "図番", "品番")

_JAPANESE_MONTH_RE = re.compile(r"(\d{1,2})\s*月")
_NUMERIC_MONTH_RE = re.compile(r"(?:20\d{2}[/\-])?(\d{1,2})")
_ENGLISH_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")


class ForecastImportError(ValueError):
    """Raised when a workbook cannot be interpreted as a forecast sheet."""


@dataclass(frozen=True)
class MonthColumn:
    index: int
    header: str
    month_key: str


@dataclass
class ForecastImportSummary:
    sheet_name: str = ""
    header_row: int = 0
    month_columns: List[MonthColumn] = field(default_factory=list)
    rows_processed: int = 0
    saved: int = 0

    @property
    def message(self) -> str:
        return f"Import completed: {self.saved} forecasts saved from {self.rows_processed} data rows"


def _month_key(month: int) -> str:
    return f"{month:02d}/01"


def parse_month_header(value: Any) -> Optional[str]:
    """Return the ``MM/01`` key described by a column header, or ``None``."""

    if isinstance(value, (datetime, date, pd.Timestamp)):
        return _month_key(value.month)

    header = str(value or "").strip().lower()
    if not header:
        return None

    match = _JAPANESE_MONTH_RE.search(header)
    if match and 1 <= int(match.group(1)) <= 12:
        return _month_key(int(match.group(1)))

    for index, name in enumerate(_ENGLISH_MONTHS, start=1):
        if name in header:
            return _month_key(index)

    match = _NUMERIC_MONTH_RE.search(header)
    if match:
        month = int(match.group(1))
        if 1 <= month <= 12:
            return _month_key(month)
    return None


def is_excel_upload(filename: Optional[str], content_type: Optional[str]) -> bool:
    if content_type and "spreadsheet" in content_type:
        return True
    return bool(filename and re.search(r"\.(xlsx|xls)$", filename, re.IGNORECASE))


class ForecastImportService:
    def __init__(self, part_prefix: str = "PP4166") -> None:
        self.part_prefix = part_prefix

    def _pick_sheet(self, sheets: Dict[str, pd.DataFrame]) -> str:
        names = list(sheets)
        if not names:
            raise ForecastImportError("No valid worksheet found in Excel file")
        for name in names:
            lowered = str(name).lower()
            if any(hint in lowered for hint in SHEET_NAME_HINTS):
                return name
        return names[0]

    def _find_drawing_column(self, frame: pd.DataFrame) -> Optional[tuple[int, int]]:
        for row_index in range(min(HEADER_SCAN_ROWS, len(frame))):
            row = frame.iloc[row_index].tolist()
            for col_index, cell in enumerate(row):
                text = "" if pd.isna(cell) else str(cell).strip()
                if self.part_prefix in text or any(hint in text.lower() for hint in DRAWING_HEADER_HINTS):
                    return row_index, col_index
        return None

    def parse_frame(self, frame: pd.DataFrame) -> tuple[int, int, List[MonthColumn]]:
        if len(frame) < 2:
            raise ForecastImportError("Excel file must have at least 2 rows (header + data)")

        located = self._find_drawing_column(frame)
        if located is None:
            raise ForecastImportError(
                "Could not find drawing number column. Please ensure your Excel file has a column "
                f"with drawing numbers ({self.part_prefix}-xxx) or headers like "
                '"Drawing Number", "図番", "品番"'
            )
        header_row, drawing_col = located

        header_values = frame.iloc[header_row].tolist()
        month_columns: List[MonthColumn] = []
        for col_index in range(drawing_col + 1, len(header_values)):
            cell = header_values[col_index]
            if cell is None or (not isinstance(cell, (datetime, date)) and pd.isna(cell)):
                continue
            month_key = parse_month_header(cell)
            if month_key is not None:
                month_columns.append(MonthColumn(index=col_index, header=str(cell), month_key=month_key))

        if not month_columns:
            raise ForecastImportError(
                'Could not find any month columns. Please ensure your Excel file has month headers '
                'like "8月", "Aug", "2025/8", etc.'
            )
        return header_row, drawing_col, month_columns

    def import_workbook(self, payload: bytes, store: DataStore) -> ForecastImportSummary:
        """Read the workbook in ``payload`` and upsert every positive forecast cell."""

        try:
            sheets = pd.read_excel(io.BytesIO(payload), sheet_name=None, header=None, dtype=object)
        except (ValueError, zipfile.BadZipFile) as exc:
            raise ForecastImportError(f"Unable to read Excel file: {exc}") from exc

        sheet_name = self._pick_sheet(sheets)
        frame = sheets[sheet_name].dropna(how="all").reset_index(drop=True)
        LOGGER.info("Reading forecasts from sheet %s (%d rows)", sheet_name, len(frame))

        header_row, drawing_col, month_columns = self.parse_frame(frame)
        summary = ForecastImportSummary(
            sheet_name=str(sheet_name),
            header_row=header_row + 1,
            month_columns=month_columns,
        )

        for row_index in range(header_row + 1, len(frame)):
            row = frame.iloc[row_index].tolist()
            cell = row[drawing_col] if drawing_col < len(row) else None
            drawing_number = "" if cell is None or pd.isna(cell) else str(cell).strip()
            if not drawing_number.startswith(self.part_prefix):
                continue

            summary.rows_processed += 1
            for column in month_columns:
                quantity = coerce_int(row[column.index]) if column.index < len(row) else 0
                if quantity <= 0:
                    continue
                store.save_forecast(drawing_number, column.month_key, quantity)
                summary.saved += 1

        LOGGER.info(
            "Forecast import: sheet=%s months=%d rows=%d saved=%d",
            summary.sheet_name,
            len(summary.month_columns),
            summary.rows_processed,
            summary.saved,
        )
        return summary
