r"""backend\app\services\sufficiency_service.py

Answer "is this demand item covered by stock?" for a part number.

Projections are recomputed wholesale from one consistent store snapshot and
cached against the store generation they were built from.  Lookups that cannot
be answered from a projection fall back to the named ``FallbackPolicies``:
unknown part numbers and stale results read as sufficient, a group with no
stock reads as insufficient.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..core.observability import record_projection_refresh
from .demand import (
    DemandItem,
    DemandItemKey,
    ForecastKey,
    OrderKey,
    build_demand_items,
    normalize_month_date,
    parse_item_key,
)
from .groups import GroupCatalog
from .projection_service import ProjectionResult, project_all, sort_demand
from .store import DataStore, StoreSnapshot

LOGGER = logging.getLogger(__name__)

ItemRef = Union[DemandItemKey, DemandItem, Mapping[str, Any], str]


@dataclass(frozen=True)
class FallbackPolicies:
    unknown_product: bool = True
    zero_stock: bool = False
    stale_result: bool = True


DEFAULT_POLICIES = FallbackPolicies()


@dataclass(frozen=True)
class ProjectionSnapshot:
    generation: int
    results: Mapping[str, ProjectionResult]
    snapshot: StoreSnapshot
    reference_date: date


def item_key_for(part_number: str, item: ItemRef) -> Optional[DemandItemKey]:
    """Rebuild the identity key of ``item`` as it was built for the projection.

    ``item`` may already be a key or demand item, the ``order-<id>`` /
    ``forecast-<part>-<MM/01>`` wire form, or a mapping with ``kind`` and
    ``order_id`` or ``month_key``.  Returns ``None`` when it cannot be
    interpreted.
    """

    if isinstance(item, (OrderKey, ForecastKey)):
        return item
    if isinstance(item, DemandItem):
        return item.key
    if isinstance(item, str):
        return parse_item_key(item)
    if not isinstance(item, Mapping):
        return None

    kind = str(item.get("kind") or "").strip().lower()
    if kind == "order":
        raw_id = item.get("order_id", item.get("orderId"))
        try:
            return OrderKey(int(raw_id))
        except (TypeError, ValueError):
            return None
    if kind == "forecast":
        raw_month = item.get("month_key", item.get("monthKey"))
        if raw_month is None or str(raw_month).strip() == "":
            return None
        return ForecastKey(part_number, normalize_month_date(raw_month))
    return None


class SufficiencyService:
    """Own the latest projections and answer sufficiency queries."""

    def __init__(
        self,
        catalog: GroupCatalog,
        *,
        policies: FallbackPolicies = DEFAULT_POLICIES,
        today: Callable[[], date] = date.today,
    ) -> None:
        self.catalog = catalog
        self.policies = policies
        self._today = today
        self._current: Optional[ProjectionSnapshot] = None
        self._guard = threading.Lock()

    # ------------------------------------------------------------------
    @property
    def generation(self) -> Optional[int]:
        current = self._current
        return current.generation if current is not None else None

    def current(self) -> Optional[ProjectionSnapshot]:
        return self._current

    def refresh(self, store: DataStore) -> bool:
        """Recompute every projection from one store snapshot.

        Returns ``False`` without touching the cached results when another
        refresh is already running.
        """

        if not self._guard.acquire(blocking=False):
            LOGGER.info("Projection refresh already in flight; skipping.")
            record_projection_refresh("skipped")
            return False
        try:
            snapshot = store.snapshot()
            today = self._today()
            groups = self.catalog.with_stock(snapshot.stock_levels())
            results = project_all(
                groups,
                snapshot.orders,
                snapshot.forecasts,
                reference_date=today,
            )
            self._current = ProjectionSnapshot(
                generation=snapshot.generation,
                results=results,
                snapshot=snapshot,
                reference_date=today,
            )
            LOGGER.info(
                "Projections refreshed generation=%s groups=%d",
                snapshot.generation,
                len(results),
            )
            record_projection_refresh("completed")
            return True
        finally:
            self._guard.release()

    def ensure_fresh(self, store: DataStore) -> Optional[ProjectionSnapshot]:
        """Refresh only when the cached projections predate the store's data."""

        current = self._current
        if current is None or current.generation != store.generation:
            self.refresh(store)
        return self._current

    # ------------------------------------------------------------------
    def result_for(self, group_key: str) -> Optional[ProjectionResult]:
        current = self._current
        if current is None:
            return None
        return current.results.get(group_key)

    def is_sufficient(self, part_number: str, item: ItemRef) -> bool:
        group = self.catalog.group_for(part_number)
        if group is None:
            return self.policies.unknown_product

        result = self.result_for(group.key)
        if result is None:
            return self.policies.stale_result

        if result.all_insufficient:
            return self.policies.zero_stock

        key = item_key_for(part_number, item)
        entry = result.item_availability.get(key) if key is not None else None
        if entry is None:
            return self.policies.stale_result
        return entry.sufficient

    # ------------------------------------------------------------------
    def demand_for(self, group_key: str) -> List[DemandItem]:
        """Chronologically sorted demand of ``group_key`` from the cached snapshot."""

        current = self._current
        group = self.catalog.get(group_key)
        if current is None or group is None:
            return []
        return sort_demand(
            build_demand_items(
                group,
                current.snapshot.orders,
                current.snapshot.forecasts,
                reference_date=current.reference_date,
            )
        )

    def stock_levels(self) -> Dict[str, int]:
        current = self._current
        return current.snapshot.stock_levels() if current is not None else {}
