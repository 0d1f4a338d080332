r"""backend/app/api/v1/orders.py

Routes for EDI orders: listing, status edits, file import and export."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from ...core.config import get_settings
from ...models import schemas
from ...services.auth_service import SessionUser
from ...services.edi_import_service import EdiImportService
from ...services.export_service import export_filename, orders_to_csv, orders_to_json
from ...services.store import Order
from ..deps import AppState, error_payload, get_state, require_admin, require_user

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _order_out(order: Order) -> schemas.OrderOut:
    return schemas.OrderOut.model_validate(order, from_attributes=True)


async def read_upload(upload: Optional[UploadFile]) -> bytes:
    """Return the uploaded bytes, enforcing presence and the size limit."""

    if upload is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload("no_file", "No file uploaded"),
        )
    payload = await upload.read()
    limit = get_settings().max_upload_bytes
    if len(payload) > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=error_payload("file_too_large", f"Uploads are limited to {limit} bytes."),
        )
    LOGGER.info("Received upload %s (%d bytes, %s)", upload.filename, len(payload), upload.content_type)
    return payload


@router.get("/edi-data", response_model=List[schemas.OrderOut])
def list_orders(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> List[schemas.OrderOut]:
    """Return all orders by part display order and delivery date."""

    return [_order_out(order) for order in state.store.list_orders()]


@router.put("/edi-data/{order_id}")
def update_order_status(
    order_id: int,
    body: schemas.StatusUpdate,
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    updated = state.store.update_status(order_id, body.status)
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_payload("order_not_found", f"Order {order_id} was not found."),
        )
    LOGGER.info("Order %s status set to %r by %s", order_id, body.status, user.username)
    return {"success": True, "message": "Status updated successfully", "order": _order_out(updated)}


@router.post("/import-edi")
async def import_edi(
    ediFile: Optional[UploadFile] = File(None),
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    """Import a WebEDI export; orders already known by order number are skipped."""

    payload = await read_upload(ediFile)
    service = EdiImportService(
        order_prefix=state.catalog.order_prefix,
        part_prefix=state.catalog.part_prefix,
    )
    try:
        summary = service.import_payload(payload, state.store)
    except Exception as exc:
        LOGGER.exception("EDI import failed for %s", ediFile.filename if ediFile else None)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("import_failed", f"Failed to import data: {exc}"),
        ) from exc

    return {
        "success": True,
        "message": summary.message,
        "imported": summary.imported,
        "skipped": summary.skipped,
        "errors": summary.errors,
        "debug": {
            "rows_processed": summary.rows_processed,
            "valid_orders_found": summary.valid_orders_found,
            "encoding": summary.encoding,
        },
    }


@router.get("/export/csv")
def export_csv(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> Response:
    orders = state.store.list_orders()
    LOGGER.info("Exporting %d orders to CSV for %s", len(orders), user.username)
    return Response(
        content=orders_to_csv(orders).encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("csv")}"'},
    )


@router.get("/export/json")
def export_json(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> Response:
    orders = state.store.list_orders()
    LOGGER.info("Exporting %d orders to JSON for %s", len(orders), user.username)
    payload = orders_to_json(orders, exported_by=user.username)
    return Response(
        content=json.dumps(payload, ensure_ascii=False),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{export_filename("json")}"'},
    )
