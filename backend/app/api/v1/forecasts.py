"""Routes for monthly demand forecasts."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from ...models import schemas
from ...services.auth_service import SessionUser
from ...services.demand import coerce_int
from ...services.forecast_import_service import (
    ForecastImportError,
    ForecastImportService,
    is_excel_upload,
)
from ..deps import AppState, error_payload, get_state, require_admin, require_user
from .orders import read_upload

LOGGER = logging.getLogger(__name__)

router = APIRouter()


@router.get("/forecasts", response_model=List[schemas.ForecastOut])
def list_forecasts(
    user: SessionUser = Depends(require_user),
    state: AppState = Depends(get_state),
) -> List[schemas.ForecastOut]:
    return [
        schemas.ForecastOut.model_validate(entry, from_attributes=True)
        for entry in state.store.list_forecasts()
    ]


@router.post("/forecasts")
def save_forecast(
    body: schemas.ForecastIn,
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    """Create or update the forecast for one part number and month."""

    entry = state.store.save_forecast(body.drawing_number, body.month_date, coerce_int(body.quantity))
    LOGGER.info(
        "Forecast saved: %s %s = %s",
        entry.drawing_number,
        entry.month_date,
        entry.quantity,
    )
    return {"success": True, "message": "Forecast saved successfully"}


@router.post("/forecasts/batch")
def save_forecasts_batch(
    body: schemas.ForecastBatch,
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    saved = 0
    errors = 0
    for forecast in body.forecasts:
        try:
            state.store.save_forecast(
                forecast.drawing_number,
                forecast.month_date,
                coerce_int(forecast.quantity),
            )
            saved += 1
        except Exception:
            LOGGER.exception("Error saving forecast %s %s", forecast.drawing_number, forecast.month_date)
            errors += 1

    LOGGER.info("Forecast batch save completed: %d saved, %d errors", saved, errors)
    return {
        "success": True,
        "message": f"Batch save completed: {saved} saved, {errors} errors",
        "saved": saved,
        "errors": errors,
    }


@router.delete("/forecasts/clear")
def clear_forecasts(
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    removed = state.store.clear_forecasts()
    LOGGER.info("Cleared %d forecasts (requested by %s)", removed, user.username)
    return {"success": True, "message": "All forecast data cleared successfully", "removed": removed}


@router.post("/import-forecast")
async def import_forecast(
    forecastFile: Optional[UploadFile] = File(None),
    user: SessionUser = Depends(require_admin),
    state: AppState = Depends(get_state),
) -> Dict[str, Any]:
    """Import forecasts from an Excel workbook."""

    payload = await read_upload(forecastFile)
    if not is_excel_upload(forecastFile.filename, forecastFile.content_type):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload("invalid_file", "Please upload an Excel file (.xlsx or .xls)"),
        )

    service = ForecastImportService(part_prefix=state.catalog.part_prefix)
    try:
        summary = service.import_workbook(payload, state.store)
    except ForecastImportError as exc:
        LOGGER.warning("Forecast import rejected: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_payload("invalid_workbook", str(exc)),
        ) from exc
    except Exception as exc:
        LOGGER.exception("Unexpected error while importing forecasts")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=error_payload("import_failed", "Failed to import forecast data"),
        ) from exc

    return {
        "success": True,
        "message": summary.message,
        "details": {
            "sheet_name": summary.sheet_name,
            "header_row": summary.header_row,
            "month_columns": len(summary.month_columns),
            "rows_processed": summary.rows_processed,
            "saved": summary.saved,
        },
    }
