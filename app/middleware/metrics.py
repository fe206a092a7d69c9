"""Prometheus metrics middleware: instruments every HTTP request.

Per request: ACTIVE_REQUESTS goes up then down, REQUEST_COUNT is
incremented by method/endpoint/status, and the duration lands in the
REQUEST_DURATION histogram.

ENDPOINT LABEL
---------------
Our paths carry UUIDs (/v1/lessons/<uuid>/complete).  Labelling by the
raw path would mint a new time series per lesson, which Prometheus
handles badly.  The label is therefore the route TEMPLATE FastAPI
matched (/v1/lessons/{lesson_id}/complete); requests that match no
route share the single label "unmatched".
"""

from __future__ import annotations

import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.core.metrics import ACTIVE_REQUESTS, REQUEST_COUNT, REQUEST_DURATION

UNMATCHED = "unmatched"


def endpoint_label(request: Request) -> str:
    route = request.scope.get("route")
    return getattr(route, "path", None) or UNMATCHED


class MetricsMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # Scrapes are not traffic.
        if request.url.path == "/metrics":
            return await call_next(request)

        ACTIVE_REQUESTS.inc()
        start = time.monotonic()
        status_code = "500"
        try:
            response = await call_next(request)
            status_code = str(response.status_code)
        finally:
            duration = time.monotonic() - start
            ACTIVE_REQUESTS.dec()
            endpoint = endpoint_label(request)
            REQUEST_COUNT.labels(
                method=request.method, endpoint=endpoint, status_code=status_code
            ).inc()
            REQUEST_DURATION.labels(method=request.method, endpoint=endpoint).observe(
                duration
            )

        return response
