r"""backend\app\api\v1\projections.py

Stock-sufficiency projections per material group and single-item lookups."""

from __future__ import annotations

import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ...models import schemas
from ...services.auth_service import SessionUser
from ...services.groups import MaterialGroup
from ...services.projection_service import ItemAvailability, ProjectionResult
from ...services.sufficiency_service import item_key_for
from ..deps import AppState, error_payload, get_state, require_user

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _wire_date(value: date) -> str:
    return value.strftime("%Y/%m/%d")


def _item_out(entry: ItemAvailability) -> schemas.ItemAvailabilityOut:
    return schemas.ItemAvailabilityOut(
        key=entry.key.as_string(),
        kind=entry.kind,
        part_number=entry.part_number,
        date=_wire_date(entry.date),
        quantity=entry.quantity,
        before_stock=entry.before_stock,
        after_stock=entry.after_stock,
        balance=entry.balance,
        sufficient=entry.sufficient,
        shortfall=entry.shortfall,
    )


def _projection_out(group: MaterialGroup, result: Optional[ProjectionResult]) -> schemas.ProjectionOut:
    if result is None:
        return schemas.ProjectionOut(
            group_key=group.key,
            group_name=group.name,
            parts=list(group.parts),
            current_stock=0,
            final_stock=0,
            all_insufficient=True,
            items=[],
        )
    return schemas.ProjectionOut(
        group_key=group.key,
        group_name=group.name,
        parts=list(group.parts),
        current_stock=result.current_stock,
        final_stock=result.final_stock,
        all_insufficient=result.all_insufficient,
        items=[_item_out(entry) for entry in result.items()],
    )


def _group_or_404(state: AppState, group_key: str) -> MaterialGroup:
    group = state.catalog.get(group_key)
    if group is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("group_not_found", f"Material group '{group_key}' is not configured."),
        )
    return group


@router.get("/projections", response_model=schemas.ProjectionsResponse)
def list_projections(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> schemas.ProjectionsResponse:
    """Project every material group against its current stock."""

    state.sufficiency.ensure_fresh(state.store)
    return schemas.ProjectionsResponse(
        generation=state.sufficiency.generation,
        groups=[
            _projection_out(group, state.sufficiency.result_for(group.key))
            for group in state.catalog.groups()
        ],
    )


@router.get("/projections/{group_key}", response_model=schemas.ProjectionOut)
def get_projection(
    group_key: str,
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> schemas.ProjectionOut:
    group = _group_or_404(state, group_key)
    state.sufficiency.ensure_fresh(state.store)
    return _projection_out(group, state.sufficiency.result_for(group.key))


@router.get("/projections/{group_key}/demand", response_model=List[schemas.DemandItemOut])
def get_group_demand(
    group_key: str,
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> List[schemas.DemandItemOut]:
    """Return the group's demand in consumption order with its sufficiency flag."""

    group = _group_or_404(state, group_key)
    state.sufficiency.ensure_fresh(state.store)
    return [
        schemas.DemandItemOut(
            key=item.key.as_string(),
            kind=item.kind,
            part_number=item.part_number,
            date=_wire_date(item.date),
            quantity=item.quantity,
            priority=item.priority,
            order_number=item.order_number,
            status=item.status,
            sufficient=state.sufficiency.is_sufficient(item.part_number, item),
        )
        for item in state.sufficiency.demand_for(group.key)
    ]


@router.get("/sufficiency", response_model=schemas.SufficiencyResponse)
def check_sufficiency(
    part_number: str = Query(..., min_length=1),
    kind: str = Query(..., pattern="^(order|forecast)$"),
    order_id: Optional[int] = Query(None),
    month_key: Optional[str] = Query(None),
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> schemas.SufficiencyResponse:
    """Answer whether one order or forecast bucket is covered by stock."""

    key = item_key_for(part_number, {"kind": kind, "order_id": order_id, "month_key": month_key})
    if key is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload(
                "invalid_item",
                "Orders need 'order_id' and forecasts need 'month_key'.",
            ),
        )

    state.sufficiency.ensure_fresh(state.store)
    sufficient = state.sufficiency.is_sufficient(part_number, key)
    LOGGER.debug("Sufficiency %s %s -> %s", part_number, key.as_string(), sufficient)
    return schemas.SufficiencyResponse(part_number=part_number, key=key.as_string(), sufficient=sufficient)
