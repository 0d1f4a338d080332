r"""backend\app\api\v1\stocks.py

Material stock entry and the configured material groups."""

from __future__ import annotations

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Depends
from pydantic import ValidationError

from ...models import schemas
from ...services.auth_service import SessionUser
from ...services.demand import coerce_int
from ...services.export_service import format_timestamp
from ...services.store import MaterialStock
from ..deps import AppState, get_state, require_admin, require_user

LOGGER = logging.getLogger(__name__)

router = APIRouter()

# Keys the dashboard stores alongside stock entries.
IGNORED_STOCK_KEYS = {"lastSaved", "calculationsGenerated"}


def stock_level(quantity: int) -> str:
    if quantity > 100:
        return "high"
    if quantity > 50:
        return "medium"
    if quantity > 0:
        return "low"
    return "empty"


def _stock_out(stock: MaterialStock) -> schemas.StockOut:
    quantity = stock.quantity or 0
    return schemas.StockOut(
        group_key=stock.group_key,
        group_name=stock.group_name,
        quantity=quantity,
        created_at=stock.created_at,
        updated_at=stock.updated_at,
        last_updated_formatted=format_timestamp(stock.updated_at) or "Never",
        has_stock=quantity > 0,
        stock_level=stock_level(quantity),
    )


@router.get("/material-stocks", response_model=List[schemas.StockOut])
def list_stocks(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> List[schemas.StockOut]:
    return [_stock_out(stock) for stock in state.store.list_stocks()]


@router.post("/material-stocks")
def save_stocks(
    body: schemas.StockBatch,
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    """Upsert stock quantities keyed by material group."""

    saved = 0
    errors = 0
    results: List[Dict[str, Any]] = []
    for group_key, raw in body.stocks.items():
        if group_key in IGNORED_STOCK_KEYS:
            continue
        if not isinstance(raw, dict):
            errors += 1
            results.append({"group_key": group_key, "status": "error", "error": "Invalid stock entry"})
            continue
        try:
            entry = schemas.StockIn.model_validate(raw)
        except ValidationError as exc:
            LOGGER.warning("Rejected stock entry for %s: %s", group_key, exc.errors())
            errors += 1
            results.append({"group_key": group_key, "status": "error", "error": "Invalid stock entry"})
            continue
        group = state.catalog.get(group_key)
        if group is None:
            LOGGER.warning("Saving stock for unconfigured group %s", group_key)
        group_name = entry.groupName or (group.name if group else group_key)
        stock = state.store.save_stock(group_key, group_name, coerce_int(entry.quantity))
        saved += 1
        results.append({"group_key": group_key, "status": "saved", "data": _stock_out(stock).model_dump()})

    LOGGER.info("Material stocks batch save completed: %d saved, %d errors", saved, errors)
    message = f"Material stocks batch save: {saved} groups saved"
    if errors:
        message += f", {errors} errors"
    return {"success": saved > 0, "message": message, "saved": saved, "errors": errors, "results": results}


@router.delete("/material-stocks/clear")
def clear_stocks(
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    removed = state.store.clear_stocks()
    LOGGER.info("Cleared %d material stock records (requested by %s)", removed, user.username)
    return {"success": True, "message": "All material stock data cleared successfully", "removed": removed}


@router.get("/material-groups", response_model=List[schemas.MaterialGroupOut])
def list_groups(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> List[schemas.MaterialGroupOut]:
    levels = {stock.group_key: stock.quantity for stock in state.store.list_stocks()}
    return [
        schemas.MaterialGroupOut(
            key=group.key,
            name=group.name,
            parts=list(group.parts),
            current_stock=group.current_stock,
        )
        for group in state.catalog.with_stock(levels)
    ]
