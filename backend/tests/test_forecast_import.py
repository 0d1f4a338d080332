r"""backend/tests/test_forecast_import.py"""

from __future__ import annotations

import io
import sys
from datetime import datetime
from pathlib import Path

import pandas as pd
import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.services.forecast_import_service import (  # noqa: E402
    ForecastImportError,
    ForecastImportService,
    is_excel_upload,
    parse_month_header,
)
from backend.app.services.store import DataStore  # noqa: E402


def _workbook(rows, sheet_name: str = "Forecast") -> bytes:
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
        pd.DataFrame([["Summary sheet"]]).to_excel(writer, sheet_name="Notes", header=False, index=False)
        pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
    return buffer.getvalue()


@pytest.mark.parametrize(
    "header, expected",
    [
        ("8月", "08/01"),
        ("11月", "11/01"),
        ("Aug", "08/01"),
        ("December", "12/01"),
        ("2025/8", "08/01"),
        ("2025-10", "10/01"),
        ("9", "09/01"),
        (datetime(2025, 12, 1), "12/01"),
        ("Total", None),
        ("13", None),
        ("", None),
    ],
)
def test_parse_month_header(header, expected) -> None:
    assert parse_month_header(header) == expected


def test_import_workbook_saves_positive_cells() -> None:
    rows = [
        ["Forecast FY2025", None, None, None, None],
        ["Drawing Number", "8月", "Sep", "2025/10", "合計"],
        ["PP4166-4681P003", 10, 0, 5, 15],
        ["PP4166-4726P003", "3", None, 7, 10],
        ["Remarks", 1, 1, 1, 3],
    ]
    store = DataStore()

    summary = ForecastImportService().import_workbook(_workbook(rows), store)

    assert summary.sheet_name == "Forecast"
    assert summary.header_row == 2
    assert [column.month_key for column in summary.month_columns] == ["08/01", "09/01", "10/01"]
    assert summary.rows_processed == 2
    assert summary.saved == 4
    saved = {(entry.drawing_number, entry.month_date): entry.quantity for entry in store.list_forecasts()}
    assert saved == {
        ("PP4166-4681P003", "08/01"): 10,
        ("PP4166-4681P003", "10/01"): 5,
        ("PP4166-4726P003", "08/01"): 3,
        ("PP4166-4726P003", "10/01"): 7,
    }


def test_import_workbook_without_drawing_column() -> None:
    rows = [["Item", "8月"], ["Widget", 4]]

    with pytest.raises(ForecastImportError, match="drawing number column"):
        ForecastImportService().import_workbook(_workbook(rows), DataStore())


def test_import_workbook_without_month_columns() -> None:
    rows = [["図番", "Comment"], ["PP4166-4681P003", "rush"]]

    with pytest.raises(ForecastImportError, match="month columns"):
        ForecastImportService().import_workbook(_workbook(rows), DataStore())


def test_unreadable_payload_is_rejected() -> None:
    with pytest.raises(ForecastImportError):
        ForecastImportService().import_workbook(b"plain text, not a workbook", DataStore())


def test_is_excel_upload() -> None:
    assert is_excel_upload("plan.XLSX", None)
    assert is_excel_upload("blob", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet")
    assert not is_excel_upload("plan.csv", "text/csv")
