r"""backend\app\core\observability.py"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

LOGGER = logging.getLogger("edi_stock.access")


_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)
_PROJECTION_REFRESHES = Counter(
    "projection_refreshes_total", "Projection refresh attempts", ["outcome"]
)


def record_projection_refresh(outcome: str) -> None:
    try:
        _PROJECTION_REFRESHES.labels(outcome).inc()
    except Exception:
        LOGGER.debug("Unable to record projection refresh metric", exc_info=True)


class RequestLogAndRateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing rate limiting, access logging, and Prometheus metrics."""

    _lock: threading.Lock = threading.Lock()
    _buckets: dict[str, deque[float]] = defaultdict(deque)
    _per_minute: int = int(os.getenv("RATE_LIMIT_PER_MIN", "120"))
    # Rate limiting is skipped while pytest runs a test unless a test opts in.
    _enforce_in_tests: bool = False
    _exempt_prefixes: tuple[str, ...] = (
        "/api/v1/health",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    def _rate_limited(self, client_ip: str) -> bool:
        if self._per_minute <= 0:
            return False
        if os.getenv("PYTEST_CURRENT_TEST") and not self._enforce_in_tests:
            return False
        now = time.time()
        with self._lock:
            window = self._buckets[client_ip]
            while window and now - window[0] > 60.0:
                window.popleft()
            if len(window) >= self._per_minute:
                return True
            window.append(now)
        return False

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)

            try:
                _REQUEST_COUNTER.labels(method, path, str(status_code)).inc()
                _LATENCY_HISTOGRAM.labels(method, path).observe(latency)
            except Exception:
                # Metrics errors should never break request handling.
                LOGGER.debug("Unable to record request metrics", exc_info=True)

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "username": getattr(request.state, "username", None),
            }
            LOGGER.info(json.dumps(log_payload, ensure_ascii=False))
            response.headers["x-request-id"] = request_id
            return response

        if not path.startswith(self._exempt_prefixes) and self._rate_limited(client_ip):
            return _finalize(
                JSONResponse(
                    {"detail": {"error": "rate_limited", "message": "Too Many Requests"}},
                    status_code=429,
                )
            )

        try:
            response = await call_next(request)
        except Exception:
            # Even if downstream fails we still want metrics/logs; re-raise after logging.
            _finalize(JSONResponse({"detail": "Internal Server Error"}, status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
