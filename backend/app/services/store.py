r"""backend\app\services\store.py

In-memory repository for orders, forecasts and material stock.

Every mutation bumps ``generation`` so that callers caching derived data
(projections) can tell when their cache is stale.  ``snapshot`` returns one
consistent view of all three collections taken under the store lock.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

from .demand import normalize_month_date, parse_delivery_date

LOGGER = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class Order:
    id: int
    order_number: str
    drawing_number: str
    quantity: int
    delivery_date: str
    product_name: str = ""
    status: str = ""
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class ForecastEntry:
    id: int
    drawing_number: str
    month_date: str
    quantity: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class MaterialStock:
    group_key: str
    group_name: str
    quantity: int
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


@dataclass(frozen=True)
class StoreSnapshot:
    generation: int
    orders: Tuple[Order, ...]
    forecasts: Tuple[ForecastEntry, ...]
    stocks: Tuple[MaterialStock, ...]

    def stock_levels(self) -> Dict[str, int]:
        return {stock.group_key: stock.quantity for stock in self.stocks}


class DataStore:
    """Thread-safe in-process storage for the EDI data set."""

    def __init__(self, part_rank: Optional[Callable[[str], int]] = None) -> None:
        self._lock = threading.RLock()
        self._orders: Dict[int, Order] = {}
        self._forecasts: Dict[Tuple[str, str], ForecastEntry] = {}
        self._stocks: Dict[str, MaterialStock] = {}
        self._next_order_id = 1
        self._next_forecast_id = 1
        self._generation = 0
        self._part_rank = part_rank or (lambda part: 0)

    @property
    def generation(self) -> int:
        return self._generation

    def _touch(self) -> None:
        self._generation += 1

    # ------------------------------------------------------------------
    def list_orders(self) -> List[Order]:
        """Return orders by part display order, then delivery date."""

        with self._lock:
            orders = list(self._orders.values())
        return sorted(
            orders,
            key=lambda o: (self._part_rank(o.drawing_number), parse_delivery_date(o.delivery_date)),
        )

    def get_order(self, order_id: int) -> Optional[Order]:
        with self._lock:
            return self._orders.get(order_id)

    def add_order(
        self,
        *,
        order_number: str,
        drawing_number: str,
        quantity: int,
        delivery_date: str,
        product_name: str = "",
    ) -> Tuple[Order, bool]:
        """Insert an order unless its ``order_number`` already exists.

        Returns the stored order and whether it was newly added.
        """

        with self._lock:
            for existing in self._orders.values():
                if existing.order_number == order_number:
                    return existing, False
            stamp = _now()
            order = Order(
                id=self._next_order_id,
                order_number=order_number,
                drawing_number=drawing_number,
                quantity=quantity,
                delivery_date=delivery_date,
                product_name=product_name,
                created_at=stamp,
                updated_at=stamp,
            )
            self._orders[order.id] = order
            self._next_order_id += 1
            self._touch()
        LOGGER.debug("Added order %s (%s)", order.order_number, order.drawing_number)
        return order, True

    def update_status(self, order_id: int, status: str) -> Optional[Order]:
        with self._lock:
            order = self._orders.get(order_id)
            if order is None:
                return None
            updated = replace(order, status=status, updated_at=_now())
            self._orders[order_id] = updated
            self._touch()
        return updated

    # ------------------------------------------------------------------
    def list_forecasts(self) -> List[ForecastEntry]:
        with self._lock:
            forecasts = list(self._forecasts.values())
        return sorted(forecasts, key=lambda f: (self._part_rank(f.drawing_number), f.month_date))

    def save_forecast(self, drawing_number: str, month_date: str, quantity: float) -> ForecastEntry:
        """Upsert the forecast for ``(drawing_number, month bucket)``."""

        month_key = normalize_month_date(month_date)
        key = (drawing_number, month_key)
        with self._lock:
            stamp = _now()
            existing = self._forecasts.get(key)
            if existing is not None:
                entry = replace(existing, quantity=quantity, updated_at=stamp)
            else:
                entry = ForecastEntry(
                    id=self._next_forecast_id,
                    drawing_number=drawing_number,
                    month_date=month_key,
                    quantity=quantity,
                    created_at=stamp,
                    updated_at=stamp,
                )
                self._next_forecast_id += 1
            self._forecasts[key] = entry
            self._touch()
        return entry

    def clear_forecasts(self) -> int:
        with self._lock:
            count = len(self._forecasts)
            self._forecasts.clear()
            self._touch()
        return count

    # ------------------------------------------------------------------
    def list_stocks(self) -> List[MaterialStock]:
        with self._lock:
            stocks = list(self._stocks.values())
        return sorted(stocks, key=lambda s: s.group_key)

    def save_stock(self, group_key: str, group_name: str, quantity: int) -> MaterialStock:
        with self._lock:
            stamp = _now()
            existing = self._stocks.get(group_key)
            if existing is not None:
                stock = replace(existing, group_name=group_name, quantity=quantity, updated_at=stamp)
            else:
                stock = MaterialStock(
                    group_key=group_key,
                    group_name=group_name,
                    quantity=quantity,
                    created_at=stamp,
                    updated_at=stamp,
                )
            self._stocks[group_key] = stock
            self._touch()
        return stock

    def clear_stocks(self) -> int:
        with self._lock:
            count = len(self._stocks)
            self._stocks.clear()
            self._touch()
        return count

    # ------------------------------------------------------------------
    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                generation=self._generation,
                orders=tuple(self._orders.values()),
                forecasts=tuple(self._forecasts.values()),
                stocks=tuple(self._stocks.values()),
            )
