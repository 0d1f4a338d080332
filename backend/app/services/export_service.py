r"""backend\app\services\export_service.py"""

from __future__ import annotations

import csv
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from .store import Order

CSV_HEADERS = [
    "Order Number",
    "Drawing Number",
    "Product Name",
    "Quantity",
    "Delivery Date",
    "Status",
    "Created At",
    "Updated At",
]

# Excel needs the BOM to detect UTF-8.
BOM = "\ufeff"


def export_filename(extension: str, today: Optional[datetime] = None) -> str:
    stamp = (today or datetime.now(timezone.utc)).strftime("%Y-%m-%d")
    return f"EDI_Orders_{stamp}.{extension}"


def format_timestamp(value: Optional[str]) -> str:
    if not value:
        return ""
    parsed = pd.to_datetime(value, errors="coerce", utc=True)
    if pd.isna(parsed):
        return value
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def order_record(order: Order) -> Dict[str, Any]:
    return {
        "order_number": order.order_number or "",
        "drawing_number": order.drawing_number or "",
        "product_name": order.product_name or "",
        "quantity": order.quantity or 0,
        "delivery_date": order.delivery_date or "",
        "status": order.status or "",
        "created_at": order.created_at,
        "updated_at": order.updated_at,
    }


def orders_to_csv(orders: Iterable[Order]) -> str:
    """Render orders as CSV text: strings quoted, quantities bare, BOM prefixed."""

    rows: List[List[Any]] = []
    for order in orders:
        record = order_record(order)
        rows.append(
            [
                record["order_number"],
                record["drawing_number"],
                record["product_name"],
                int(record["quantity"]),
                record["delivery_date"],
                record["status"],
                format_timestamp(record["created_at"]),
                format_timestamp(record["updated_at"]),
            ]
        )
    frame = pd.DataFrame(rows, columns=CSV_HEADERS)
    body = frame.to_csv(index=False, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")
    return BOM + body


def orders_to_json(orders: Iterable[Order], exported_by: str) -> Dict[str, Any]:
    records = [order_record(order) for order in orders]
    return {
        "export_info": {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "exported_by": exported_by,
            "total_records": len(records),
            "format": "JSON",
        },
        "orders": records,
    }
