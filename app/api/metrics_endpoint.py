"""Prometheus scrape endpoint.

Returns every metric in app/core/metrics.py in text exposition format,
e.g.

  # TYPE course_completions_total counter
  course_completions_total 42.0
  http_requests_total{endpoint="/v1/lessons/{lesson_id}/complete",method="POST",status_code="200"} 913.0

Not authenticated; restrict it at the network edge in production.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
