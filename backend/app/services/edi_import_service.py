r"""backend\app\services\edi_import_service.py

Parse WebEDI order exports and load them into the data store.

Exports are usually Shift-JIS encoded, tab separated and have a fixed column
layout.  When a row does not match that layout we fall back to scanning it
for an order number, a part number, a ``YYYY/MM/DD`` date and a quantity.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

import pandas as pd

from .store import DataStore

LOGGER = logging.getLogger(__name__)

ORDER_NUMBER_COL = 6
QUANTITY_COL = 14
PRODUCT_NAME_COL = 20
DRAWING_NUMBER_COL = 22
DELIVERY_DATE_COL = 27

_DATE_RE = re.compile(r"^\d{4}/\d{2}/\d{2}$")
_PRODUCT_SUFFIX_RE = re.compile(r"\s*RO\d+\s*$", re.IGNORECASE)
_MOJIBAKE_MARKERS = ("◆", "◇", "�")


@dataclass(frozen=True)
class ParsedOrder:
    order_number: str
    quantity: int
    product_name: str
    drawing_number: str
    delivery_date: str


@dataclass
class ImportSummary:
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    rows_processed: int = 0
    valid_orders_found: int = 0
    encoding: str = "utf8"
    orders: List[ParsedOrder] = field(default_factory=list)

    @property
    def message(self) -> str:
        text = f"Import completed: {self.imported} new orders imported, {self.skipped} duplicates skipped"
        if self.errors:
            text += f", {self.errors} errors"
        return f"{text} (Encoding: {self.encoding})"


# ---------------------------------------------------------------------------
def decode_payload(payload: bytes) -> Tuple[str, str]:
    """Decode ``payload`` as Shift-JIS, falling back to UTF-8.

    Returns the text and the name of the encoding used.
    """

    try:
        text = payload.decode("shift_jis")
        first_line = text.split("\n", 1)[0]
        if not any(marker in first_line for marker in _MOJIBAKE_MARKERS):
            return text, "shift_jis"
        LOGGER.debug("Shift-JIS decode produced replacement markers; retrying as UTF-8")
    except UnicodeDecodeError:
        LOGGER.debug("Payload is not valid Shift-JIS; decoding as UTF-8")
    return payload.decode("utf-8", errors="replace"), "utf8"


def detect_separator(first_line: str) -> str:
    for candidate in ("\t", ",", ";"):
        if candidate in first_line:
            return candidate
    return "\t"


def clean_product_name(product_name: Optional[str]) -> str:
    if not product_name:
        return ""
    return _PRODUCT_SUFFIX_RE.sub("", str(product_name)).strip()


def format_date(value: Optional[str]) -> str:
    """Render a parseable date as ``YYYY/MM/DD``; other text is returned as is."""

    text = (value or "").strip()
    if not text:
        return ""
    parsed = pd.to_datetime(text, errors="coerce")
    if pd.isna(parsed):
        return text
    return parsed.strftime("%Y/%m/%d")


def _cell(columns: Sequence[str], index: int) -> str:
    return columns[index].strip() if index < len(columns) and columns[index] is not None else ""


def _parse_int(text: str) -> int:
    try:
        return int(text)
    except (TypeError, ValueError):
        return 0


# ---------------------------------------------------------------------------
class EdiImportService:
    def __init__(self, order_prefix: str = "LK", part_prefix: str = "PP4166") -> None:
        self.order_prefix = order_prefix
        self.part_prefix = part_prefix

    def _parse_fixed_layout(self, columns: Sequence[str]) -> Optional[ParsedOrder]:
        if len(columns) <= DELIVERY_DATE_COL:
            return None
        order_number = _cell(columns, ORDER_NUMBER_COL)
        if not order_number.startswith(self.order_prefix):
            return None
        return ParsedOrder(
            order_number=order_number,
            quantity=_parse_int(_cell(columns, QUANTITY_COL)),
            product_name=clean_product_name(_cell(columns, PRODUCT_NAME_COL)),
            drawing_number=_cell(columns, DRAWING_NUMBER_COL),
            delivery_date=format_date(_cell(columns, DELIVERY_DATE_COL)),
        )

    def _parse_by_scan(self, columns: Sequence[str]) -> Optional[ParsedOrder]:
        values = [str(value or "").strip() for value in columns]
        order_number = next(
            (value for value in values if value.startswith(self.order_prefix) and len(value) >= 10),
            None,
        )
        if order_number is None:
            return None

        quantity = 0
        drawing_number = ""
        delivery_date = ""
        product_name = ""
        for value in values:
            if not value:
                continue
            if value.isdigit() and 0 < int(value) < 10000:
                quantity = int(value)
            if value.startswith(self.part_prefix):
                drawing_number = value
            if _DATE_RE.match(value):
                delivery_date = value
            if (
                not product_name
                and len(value) > 3
                and not value.startswith(self.order_prefix)
                and not value.startswith(self.part_prefix)
                and not value.isdigit()
                and not _DATE_RE.match(value)
            ):
                product_name = clean_product_name(value)

        return ParsedOrder(
            order_number=order_number,
            quantity=quantity,
            product_name=product_name,
            drawing_number=drawing_number,
            delivery_date=delivery_date,
        )

    def parse_row(self, columns: Sequence[str]) -> Optional[ParsedOrder]:
        order = self._parse_fixed_layout(columns) or self._parse_by_scan(columns)
        if order is None or not order.order_number.startswith(self.order_prefix):
            return None
        return order

    # ------------------------------------------------------------------
    def parse(self, payload: bytes) -> ImportSummary:
        text, encoding = decode_payload(payload)
        summary = ImportSummary(encoding=encoding)

        first_line = text.lstrip("\ufeff").split("\n", 1)[0]
        separator = detect_separator(first_line)
        LOGGER.info(
            "Parsing EDI payload: %d bytes, encoding=%s, separator=%s",
            len(payload),
            encoding,
            "TAB" if separator == "\t" else separator,
        )

        reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), delimiter=separator)
        for columns in reader:
            if not any(str(value).strip() for value in columns):
                continue
            summary.rows_processed += 1
            order = self.parse_row(columns)
            if order is not None:
                summary.orders.append(order)
        summary.valid_orders_found = len(summary.orders)
        return summary

    def import_payload(self, payload: bytes, store: DataStore) -> ImportSummary:
        """Parse ``payload`` and add every new order to ``store``."""

        summary = self.parse(payload)
        for order in summary.orders:
            try:
                _, added = store.add_order(
                    order_number=order.order_number,
                    drawing_number=order.drawing_number,
                    quantity=order.quantity,
                    delivery_date=order.delivery_date,
                    product_name=order.product_name,
                )
            except Exception:
                LOGGER.exception("Error processing order %s", order.order_number)
                summary.errors += 1
                continue
            if added:
                summary.imported += 1
            else:
                summary.skipped += 1

        LOGGER.info(
            "EDI import summary: rows=%d valid=%d imported=%d skipped=%d errors=%d",
            summary.rows_processed,
            summary.valid_orders_found,
            summary.imported,
            summary.skipped,
            summary.errors,
        )
        return summary
