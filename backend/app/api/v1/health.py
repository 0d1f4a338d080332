r"""backend\app\api\v1\health.py

Liveness endpoint for orchestrators and the dashboard's status badge.

The service keeps orders, forecasts and stock in process memory, which the
payload reports so operators know a restart discards data.
"""

from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Return a basic health indicator."""
    return {"status": "ok", "storage": "in-memory"}
