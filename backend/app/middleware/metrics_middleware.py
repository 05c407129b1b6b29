"""
ASGI middleware for tracking HTTP request metrics.
Records request count, duration and 4xx/5xx responses per normalized route.
"""
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from app.utils.metrics import http_requests_total, http_request_duration_seconds, errors_total

# /api/captions/42/approve -> /api/captions/{id}/approve
_NUMERIC_SEGMENT = re.compile(r'/\d+(?=/|$)')

UNTRACKED_PATHS = ("/metrics",)


def normalize_path(path: str) -> str:
    """Collapse numeric ids so each route is one label value."""
    return _NUMERIC_SEGMENT.sub('/{id}', path)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to track HTTP metrics for Prometheus."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path in UNTRACKED_PATHS:
            return await call_next(request)

        start_time = time.time()
        method = request.method
        path = normalize_path(request.url.path)

        try:
            response = await call_next(request)
        except Exception:
            errors_total.labels(error_type="exception").inc()
            raise

        http_requests_total.labels(method=method, path=path, status=response.status_code).inc()
        http_request_duration_seconds.labels(method=method, path=path).observe(time.time() - start_time)

        if response.status_code >= 400:
            errors_total.labels(error_type=f"{response.status_code // 100}xx").inc()

        return response
