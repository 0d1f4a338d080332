r"""backend\app\services\groups.py

Material groups: pools of raw stock shared by one or more part numbers."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ..core.config import load_material_config
from .demand import coerce_quantity

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterialGroup:
    key: str
    name: str
    parts: Tuple[str, ...]
    current_stock: float = 0.0


class GroupCatalog:
    """Static membership table plus the tracked part-number display order."""

    def __init__(
        self,
        groups: Iterable[MaterialGroup],
        part_numbers: Optional[Iterable[str]] = None,
        *,
        order_prefix: str = "LK",
        part_prefix: str = "PP4166",
    ) -> None:
        self._groups: Dict[str, MaterialGroup] = {}
        self._by_part: Dict[str, str] = {}
        for group in groups:
            parts: List[str] = []
            for part in group.parts:
                owner = self._by_part.get(part)
                if owner is not None and owner != group.key:
                    LOGGER.warning(
                        "Part %s is configured in both %s and %s; keeping %s.",
                        part,
                        owner,
                        group.key,
                        owner,
                    )
                    continue
                if part not in parts:
                    parts.append(part)
            if not parts:
                LOGGER.warning("Material group %s has no parts of its own; skipping.", group.key)
                continue
            # A part belongs to exactly one stock pool.
            for part in parts:
                self._by_part[part] = group.key
            self._groups[group.key] = replace(group, parts=tuple(parts))

        if part_numbers is None:
            part_numbers = [part for group in self._groups.values() for part in group.parts]
        self.part_numbers: List[str] = list(part_numbers)
        self.order_prefix = order_prefix
        self.part_prefix = part_prefix

    # ------------------------------------------------------------------
    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "GroupCatalog":
        config = config if config is not None else load_material_config()
        raw_groups = config.get("groups") or {}
        groups: List[MaterialGroup] = []
        if isinstance(raw_groups, dict):
            for key, entry in raw_groups.items():
                entry = entry if isinstance(entry, dict) else {}
                parts = tuple(str(part) for part in entry.get("parts") or [])
                if not parts:
                    LOGGER.warning("Material group %s has no parts; skipping.", key)
                    continue
                groups.append(MaterialGroup(key=str(key), name=str(entry.get("name") or key), parts=parts))
        else:
            LOGGER.warning("Material group configuration is not a mapping; no groups loaded.")

        return cls(
            groups,
            part_numbers=config.get("part_numbers"),
            order_prefix=str(config.get("order_prefix") or "LK"),
            part_prefix=str(config.get("part_prefix") or "PP4166"),
        )

    # ------------------------------------------------------------------
    def groups(self) -> List[MaterialGroup]:
        return list(self._groups.values())

    def get(self, group_key: str) -> Optional[MaterialGroup]:
        return self._groups.get(group_key)

    def group_for(self, part_number: str) -> Optional[MaterialGroup]:
        key = self._by_part.get(part_number)
        return self._groups.get(key) if key is not None else None

    def part_rank(self, part_number: str) -> int:
        """Display rank of ``part_number``; unknown parts sort last."""

        try:
            return self.part_numbers.index(part_number)
        except ValueError:
            return len(self.part_numbers) + 999

    def with_stock(self, stock_levels: Mapping[str, Any]) -> List[MaterialGroup]:
        """Return every group with ``current_stock`` taken from ``stock_levels``.

        A group without a stock record gets ``0``.
        """

        result = []
        for group in self._groups.values():
            quantity = coerce_quantity(stock_levels.get(group.key))
            if not math.isfinite(quantity):
                quantity = 0.0
            result.append(replace(group, current_stock=quantity))
        return result
