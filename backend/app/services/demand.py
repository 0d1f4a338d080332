r"""backend\app\services\demand.py

Demand items and the grouping step that feeds the projection engine.

Orders and forecasts arrive as loosely typed records (quantities as text,
dates as ``YYYY/MM/DD`` or ``MM/01`` strings).  This module coerces them into
``DemandItem`` values that the engine can sort and consume.  Coercion never
raises: bad quantities become ``0`` and bad dates become ``FAR_FUTURE`` so the
item sorts last.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING, Any, Iterable, List, Literal, Optional, Union

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .groups import MaterialGroup
    from .store import ForecastEntry, Order

FAR_FUTURE = date.max

DemandKind = Literal["order", "forecast"]

_MONTH_KEY_RE = re.compile(r"^(\d{1,2})/\d{1,2}$")
_ORDER_KEY_RE = re.compile(r"^order-(.+)$")
_FORECAST_KEY_RE = re.compile(r"^forecast-(.+)-(\d{2}/01)$")


# ---------------------------------------------------------------------------
def coerce_int(value: Any) -> int:
    """Return ``value`` as a non-negative int, or ``0`` when it cannot be parsed."""

    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return max(int(number), 0)


def coerce_quantity(value: Any) -> float:
    """Return ``value`` as a float; ``nan`` when it is not numeric."""

    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(str(value).strip())
    except (TypeError, ValueError):
        return math.nan


def parse_delivery_date(value: Any) -> date:
    """Parse ``YYYY/MM/DD`` text; anything else maps to ``FAR_FUTURE``."""

    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    parts = text.split("/")
    if len(parts) != 3:
        return FAR_FUTURE
    try:
        year, month, day = (int(part) for part in parts)
        return date(year, month, day)
    except ValueError:
        return FAR_FUTURE


def normalize_month_date(value: Any) -> str:
    """Normalise a forecast month to the ``MM/01`` bucket convention.

    ``"8/15"`` and ``"08/01"`` become ``"08/01"``, a bare ``"8"`` becomes
    ``"08/01"``.  Text in any other shape is returned unchanged.
    """

    text = str(value if value is not None else "").strip()
    if not text:
        return text
    if "/" in text:
        month = text.split("/")[0]
        if month.isdigit():
            return f"{month.zfill(2)}/01"
        return text
    if text.isdigit():
        return f"{text.zfill(2)}/01"
    return text


def month_from_key(month_key: str) -> Optional[int]:
    """Return the month number of an ``MM/01`` key, or ``None`` if invalid."""

    match = _MONTH_KEY_RE.match(normalize_month_date(month_key))
    if not match:
        return None
    month = int(match.group(1))
    return month if 1 <= month <= 12 else None


def is_ok_status(status: Any) -> bool:
    return str(status or "").strip().lower() == "ok"


def status_category(status: Any) -> str:
    """Classify an order status as ``none``, ``ok`` or ``comment``."""

    text = str(status or "").strip()
    if not text:
        return "none"
    if text.lower() == "ok":
        return "ok"
    return "comment"


def status_priority(status: Any) -> int:
    """Stacking priority used by the charts; not read by the engine."""

    return {"none": 0, "comment": 1, "ok": 2}[status_category(status)]


# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class OrderKey:
    order_id: int

    def as_string(self) -> str:
        return f"order-{self.order_id}"


@dataclass(frozen=True)
class ForecastKey:
    part_number: str
    month_key: str

    def as_string(self) -> str:
        return f"forecast-{self.part_number}-{self.month_key}"


DemandItemKey = Union[OrderKey, ForecastKey]


def parse_item_key(text: str) -> Optional[DemandItemKey]:
    """Parse the ``order-<id>`` / ``forecast-<part>-<MM/01>`` wire form."""

    match = _FORECAST_KEY_RE.match(text or "")
    if match:
        return ForecastKey(match.group(1), match.group(2))
    match = _ORDER_KEY_RE.match(text or "")
    if match:
        try:
            return OrderKey(int(match.group(1)))
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class DemandItem:
    """One unit of future consumption: an order line or a forecast bucket."""

    key: DemandItemKey
    kind: DemandKind
    part_number: str
    date: date
    quantity: float
    priority: Optional[int] = None
    order_number: Optional[str] = None
    status: Optional[str] = None


# ---------------------------------------------------------------------------
def order_demand(order: "Order") -> Optional[DemandItem]:
    """Return the demand item for ``order`` or ``None`` when its status is OK."""

    if is_ok_status(order.status):
        return None
    return DemandItem(
        key=OrderKey(int(order.id)),
        kind="order",
        part_number=order.drawing_number,
        date=parse_delivery_date(order.delivery_date),
        quantity=coerce_int(order.quantity),
        priority=status_priority(order.status),
        order_number=order.order_number,
        status=order.status or "",
    )


def forecast_demand(forecast: "ForecastEntry", year: int) -> Optional[DemandItem]:
    """Return the demand item for ``forecast`` or ``None`` when its quantity is unusable."""

    quantity = coerce_quantity(forecast.quantity)
    if not math.isfinite(quantity) or quantity <= 0:
        return None

    month_key = normalize_month_date(forecast.month_date)
    month = month_from_key(month_key)
    item_date = date(year, month, 1) if month is not None else FAR_FUTURE
    return DemandItem(
        key=ForecastKey(forecast.drawing_number, month_key),
        kind="forecast",
        part_number=forecast.drawing_number,
        date=item_date,
        quantity=quantity,
    )


def build_demand_items(
    group: "MaterialGroup",
    orders: Iterable["Order"],
    forecasts: Iterable["ForecastEntry"],
    *,
    reference_date: Optional[date] = None,
) -> List[DemandItem]:
    """Collect the unsorted demand of every part number in ``group``.

    Forecast buckets are dated in the calendar year of ``reference_date``
    (today by default), whatever month they describe.
    """

    year = (reference_date or date.today()).year
    orders = list(orders)
    forecasts = list(forecasts)

    items: List[DemandItem] = []
    for part_number in group.parts:
        for order in orders:
            if order.drawing_number != part_number:
                continue
            item = order_demand(order)
            if item is not None:
                items.append(item)
        for forecast in forecasts:
            if forecast.drawing_number != part_number:
                continue
            item = forecast_demand(forecast, year)
            if item is not None:
                items.append(item)
    return items
