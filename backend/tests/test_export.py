r"""backend/tests/test_export.py"""

from __future__ import annotations

import sys
from datetime import datetime
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.services.export_service import (  # noqa: E402
    BOM,
    export_filename,
    format_timestamp,
    orders_to_csv,
    orders_to_json,
)
from backend.app.services.store import Order  # noqa: E402


ORDERS = [
    Order(
        id=1,
        order_number="LK25010001",
        drawing_number="PP4166-4681P003",
        quantity=25,
        delivery_date="2025/03/05",
        product_name='Frame "A"',
        status="OK",
        created_at="2025-01-02T03:04:05+00:00",
        updated_at="2025-01-02T03:04:05+00:00",
    )
]


def test_csv_has_bom_and_quoted_strings() -> None:
    text = orders_to_csv(ORDERS)

    assert text.startswith(BOM)
    header, row = text[len(BOM):].strip().split("\n")
    assert header.startswith('"Order Number","Drawing Number","Product Name","Quantity"')
    assert row == (
        '"LK25010001","PP4166-4681P003","Frame ""A""",25,"2025/03/05","OK",'
        '"2025-01-02 03:04:05","2025-01-02 03:04:05"'
    )


def test_csv_of_no_orders_is_header_only() -> None:
    text = orders_to_csv([])

    assert text[len(BOM):].strip().split("\n") == [
        '"Order Number","Drawing Number","Product Name","Quantity","Delivery Date","Status","Created At","Updated At"'
    ]


def test_json_export_envelope() -> None:
    payload = orders_to_json(ORDERS, exported_by="admin")

    assert payload["export_info"]["exported_by"] == "admin"
    assert payload["export_info"]["total_records"] == 1
    assert payload["export_info"]["format"] == "JSON"
    assert payload["orders"][0]["order_number"] == "LK25010001"
    assert payload["orders"][0]["status"] == "OK"


def test_export_filename_and_timestamps() -> None:
    assert export_filename("csv", datetime(2025, 3, 1)) == "EDI_Orders_2025-03-01.csv"
    assert format_timestamp(None) == ""
    assert format_timestamp("whenever") == "whenever"
