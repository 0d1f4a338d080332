r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API tracks EDI orders and monthly forecasts for a fixed set of part
numbers and projects them against the material stock of their group to tell
which deliveries can be covered.  A health endpoint is also provided for
readiness/liveness checks.  Configuration is read from environment variables
and YAML files in `configs/`.
"""


import logging
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

from .api.v1 import auth, forecasts, health, orders, projections, stocks
from .core.config import get_settings, split_csv
from .core.observability import RequestLogAndRateLimitMiddleware, metrics_endpoint

# Load .env from repo root
BASE_DIR = Path(__file__).resolve().parents[2]
load_dotenv(BASE_DIR / ".env")

settings = get_settings()

logging.getLogger(__name__).info(
    "Starting EDI stock API config_dir=%s rate_limit_per_min=%s",
    settings.config_dir,
    settings.rate_limit_per_min,
)

app = FastAPI(title="EDI Stock Projection API", version="0.1.0")

# Allow cross-origin requests from the Streamlit UI (and others).
origins = split_csv(settings.cors_origins) or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLogAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(auth.router, prefix="/api/v1")
app.include_router(orders.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")
app.include_router(stocks.router, prefix="/api/v1")
app.include_router(projections.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()
