r"""backend/tests/test_store_and_groups.py"""

from __future__ import annotations

import sys
from pathlib import Path

import yaml

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core.config import DEFAULT_PART_NUMBERS, load_material_config  # noqa: E402
from backend.app.services.demand import OrderKey  # noqa: E402
from backend.app.services.groups import GroupCatalog, MaterialGroup  # noqa: E402
from backend.app.services.projection_service import project_all  # noqa: E402
from backend.app.services.store import DataStore, Order  # noqa: E402


def test_default_catalog_matches_deployment(tmp_path: Path) -> None:
    catalog = GroupCatalog.from_config(load_material_config(str(tmp_path)))

    assert [group.key for group in catalog.groups()] == ["upper-frame", "top-plate", "middle-frame"]
    assert catalog.group_for("PP4166-7106P003").key == "middle-frame"
    assert catalog.group_for("UNKNOWN") is None
    assert catalog.part_numbers == DEFAULT_PART_NUMBERS
    assert catalog.order_prefix == "LK"


def test_catalog_reads_yaml(tmp_path: Path) -> None:
    config = {
        "part_numbers": ["X-2", "X-1"],
        "groups": {"pool": {"name": "Pool", "parts": ["X-1", "X-2"]}, "empty": {"parts": []}},
        "part_prefix": "X-",
    }
    (tmp_path / "material_groups.yaml").write_text(yaml.safe_dump(config), encoding="utf-8")

    catalog = GroupCatalog.from_config(load_material_config(str(tmp_path)))

    assert [group.key for group in catalog.groups()] == ["pool"]
    assert catalog.part_rank("X-2") == 0
    assert catalog.part_rank("X-1") == 1
    assert catalog.part_rank("Y") > 1
    assert catalog.part_prefix == "X-"
    assert catalog.order_prefix == "LK"


def test_malformed_yaml_falls_back_to_defaults(tmp_path: Path) -> None:
    (tmp_path / "material_groups.yaml").write_text("groups: [unclosed", encoding="utf-8")

    config = load_material_config(str(tmp_path))

    assert config["part_numbers"] == DEFAULT_PART_NUMBERS


def test_first_group_wins_for_shared_part() -> None:
    catalog = GroupCatalog(
        [
            MaterialGroup(key="one", name="One", parts=("P",)),
            MaterialGroup(key="two", name="Two", parts=("P", "Q")),
        ]
    )

    assert catalog.group_for("P").key == "one"
    assert catalog.group_for("Q").key == "two"
    assert catalog.get("two").parts == ("Q",)

    orders = [
        Order(id=1, order_number="LK1", drawing_number="P", quantity=10, delivery_date="2025/01/01"),
        Order(id=2, order_number="LK2", drawing_number="Q", quantity=5, delivery_date="2025/02/01"),
    ]
    results = project_all(catalog.with_stock({"one": 100, "two": 10}), orders, [])

    assert list(results["one"].item_availability) == [OrderKey(1)]
    assert list(results["two"].item_availability) == [OrderKey(2)]
    assert results["two"].item_availability[OrderKey(2)].sufficient is True


def test_group_left_without_parts_is_skipped() -> None:
    catalog = GroupCatalog(
        [
            MaterialGroup(key="one", name="One", parts=("P",)),
            MaterialGroup(key="copy", name="Copy", parts=("P",)),
        ]
    )

    assert [group.key for group in catalog.groups()] == ["one"]
    assert catalog.get("copy") is None


def test_with_stock_defaults_to_zero() -> None:
    catalog = GroupCatalog([MaterialGroup(key="one", name="One", parts=("P",))])

    assert catalog.with_stock({})[0].current_stock == 0
    assert catalog.with_stock({"one": "bad"})[0].current_stock == 0
    assert catalog.with_stock({"one": 25})[0].current_stock == 25


def test_orders_sorted_by_part_then_date() -> None:
    catalog = GroupCatalog.from_config({"part_numbers": ["B", "A"], "groups": {"g": {"parts": ["A", "B"]}}})
    store = DataStore(part_rank=catalog.part_rank)
    store.add_order(order_number="LK1", drawing_number="A", quantity=1, delivery_date="2025/01/01")
    store.add_order(order_number="LK2", drawing_number="Z", quantity=1, delivery_date="2024/01/01")
    store.add_order(order_number="LK3", drawing_number="B", quantity=1, delivery_date="bad")
    store.add_order(order_number="LK4", drawing_number="B", quantity=1, delivery_date="2025/03/01")

    assert [order.order_number for order in store.list_orders()] == ["LK4", "LK3", "LK1", "LK2"]


def test_store_generation_and_upserts() -> None:
    store = DataStore()
    start = store.generation

    order, added = store.add_order(order_number="LK1", drawing_number="A", quantity=1, delivery_date="2025/01/01")
    duplicate, added_again = store.add_order(order_number="LK1", drawing_number="A", quantity=9, delivery_date="2025/01/01")
    assert added is True
    assert added_again is False
    assert duplicate == order
    assert store.generation == start + 1

    first = store.save_forecast("A", "8/3", 5)
    second = store.save_forecast("A", "08/01", 7)
    assert first.id == second.id
    assert [entry.quantity for entry in store.list_forecasts()] == [7]

    store.save_stock("g", "G", 10)
    store.save_stock("g", "G", 12)
    assert store.snapshot().stock_levels() == {"g": 12}

    assert store.update_status(999, "OK") is None
    assert store.clear_forecasts() == 1
    assert store.clear_stocks() == 1
    assert store.generation == start + 7
