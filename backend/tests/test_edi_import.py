r"""backend/tests/test_edi_import.py"""

from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.services.edi_import_service import (  # noqa: E402
    EdiImportService,
    clean_product_name,
    decode_payload,
    detect_separator,
    format_date,
)
from backend.app.services.store import DataStore  # noqa: E402


def _fixed_row(order_number: str, quantity: str, product: str, part: str, delivery: str) -> str:
    columns = [""] * 30
    columns[0] = "H"
    columns[6] = order_number
    columns[14] = quantity
    columns[20] = product
    columns[22] = part
    columns[27] = delivery
    return "\t".join(columns)


def _webedi_export() -> bytes:
    rows = [
        "\t".join(["header"] * 30),
        _fixed_row("LK25010001", "25", "ｱｯﾊﾟﾌﾚｰﾑ RO12", "PP4166-4681P003", "2025/3/5"),
        _fixed_row("LK25010002", "8", "ﾄｯﾌﾟﾌﾟﾚｰﾄ", "PP4166-4726P004", "2025/04/01"),
        _fixed_row("XX00000000", "1", "ignored", "PP4166-4726P004", "2025/04/01"),
        "",
    ]
    return "\n".join(rows).encode("shift_jis")


def test_fixed_layout_rows_are_imported() -> None:
    service = EdiImportService()
    store = DataStore()

    summary = service.import_payload(_webedi_export(), store)

    assert summary.encoding == "shift_jis"
    assert summary.rows_processed == 4
    assert summary.valid_orders_found == 2
    assert summary.imported == 2
    first = store.list_orders()[0]
    assert first.order_number == "LK25010001"
    assert first.quantity == 25
    assert first.product_name == "ｱｯﾊﾟﾌﾚｰﾑ"
    assert first.drawing_number == "PP4166-4681P003"
    assert first.delivery_date == "2025/03/05"


def test_reimport_skips_known_order_numbers() -> None:
    service = EdiImportService()
    store = DataStore()
    service.import_payload(_webedi_export(), store)

    summary = service.import_payload(_webedi_export(), store)

    assert summary.imported == 0
    assert summary.skipped == 2
    assert "2 duplicates skipped" in summary.message
    assert len(store.list_orders()) == 2


def test_scan_strategy_for_short_rows() -> None:
    payload = "LK99990001,PP4166-4726P003,2025/04/01,12,Top Plate RO3\nnot,an,order\n".encode("utf-8")

    summary = EdiImportService().parse(payload)

    assert len(summary.orders) == 1
    order = summary.orders[0]
    assert order.order_number == "LK99990001"
    assert order.drawing_number == "PP4166-4726P003"
    assert order.delivery_date == "2025/04/01"
    assert order.quantity == 12
    assert order.product_name == "Top Plate"


def test_scan_strategy_requires_long_order_number() -> None:
    assert EdiImportService().parse_row(["LK123", "PP4166-1", "2025/01/01", "3"]) is None


def test_invalid_shift_jis_falls_back_to_utf8() -> None:
    text, encoding = decode_payload(b"LK00000001\xff")

    assert encoding == "utf8"
    assert text.startswith("LK00000001")


def test_helpers() -> None:
    assert detect_separator("a\tb,c") == "\t"
    assert detect_separator("a;b") == ";"
    assert detect_separator("abc") == "\t"
    assert clean_product_name("Frame RO45") == "Frame"
    assert clean_product_name(None) == ""
    assert format_date("2025-1-2") == "2025/01/02"
    assert format_date("soon") == "soon"
    assert format_date("") == ""
