r"""backend\app\services\projection_service.py

Stock-sufficiency projection.

Demand for every part number of a material group is consumed from one shared
stock pool in delivery-date order, whatever part number it belongs to.  An
item is sufficient only when the stock left before it covers its full
quantity.  The running balance may go negative internally so that later
items are judged correctly; the ``after_stock`` reported per item is clamped
at zero.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from .demand import DemandItem, DemandItemKey, DemandKind, build_demand_items
from .groups import MaterialGroup
from .store import ForecastEntry, Order

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemAvailability:
    key: DemandItemKey
    kind: DemandKind
    part_number: str
    date: date
    quantity: float
    before_stock: float
    after_stock: float
    balance: float
    sufficient: bool
    shortfall: float


@dataclass(frozen=True)
class ProjectionResult:
    group_key: str
    current_stock: float
    item_availability: Mapping[DemandItemKey, ItemAvailability] = field(
        default_factory=lambda: MappingProxyType({})
    )
    final_stock: float = 0.0
    all_insufficient: bool = False

    def items(self) -> List[ItemAvailability]:
        """Return the availability entries in consumption order."""

        return list(self.item_availability.values())


def sort_demand(items: Iterable[DemandItem]) -> List[DemandItem]:
    """Order demand by date only; ties keep their original order."""

    return sorted(items, key=lambda item: item.date)


def simulate(group_key: str, current_stock: float, items: Iterable[DemandItem]) -> ProjectionResult:
    """Run the running-balance simulation over already sorted ``items``."""

    if current_stock <= 0:
        return ProjectionResult(group_key=group_key, current_stock=0, all_insufficient=True)

    running = current_stock
    availability: Dict[DemandItemKey, ItemAvailability] = {}
    for item in items:
        before = running
        running -= item.quantity
        sufficient = before >= item.quantity
        availability[item.key] = ItemAvailability(
            key=item.key,
            kind=item.kind,
            part_number=item.part_number,
            date=item.date,
            quantity=item.quantity,
            before_stock=before,
            after_stock=max(0, running),
            balance=running,
            sufficient=sufficient,
            shortfall=0 if sufficient else item.quantity - before,
        )

    return ProjectionResult(
        group_key=group_key,
        current_stock=current_stock,
        item_availability=MappingProxyType(availability),
        final_stock=max(0, running),
        all_insufficient=False,
    )


def project(
    group: MaterialGroup,
    orders: Iterable[Order],
    forecasts: Iterable[ForecastEntry],
    *,
    reference_date: Optional[date] = None,
) -> ProjectionResult:
    """Project ``group``'s demand against its current stock."""

    if group.current_stock <= 0:
        return simulate(group.key, group.current_stock, [])

    items = sort_demand(
        build_demand_items(group, orders, forecasts, reference_date=reference_date)
    )
    result = simulate(group.key, group.current_stock, items)
    LOGGER.debug(
        "Projected group=%s stock=%s items=%d final=%s",
        group.key,
        group.current_stock,
        len(result.item_availability),
        result.final_stock,
    )
    return result


def project_all(
    groups: Iterable[MaterialGroup],
    orders: Iterable[Order],
    forecasts: Iterable[ForecastEntry],
    *,
    reference_date: Optional[date] = None,
) -> Dict[str, ProjectionResult]:
    orders = list(orders)
    forecasts = list(forecasts)
    return {
        group.key: project(group, orders, forecasts, reference_date=reference_date)
        for group in groups
    }
