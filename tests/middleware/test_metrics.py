"""Tests for Prometheus metrics middleware.

NOTE ON TESTING PROMETHEUS METRICS:
The prometheus-client library uses a global default registry.  Counters
can only go up and cannot be reset between tests, so these tests assert
on DELTAS: read the value, perform the action, read again.
"""

from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from app.repos.store import Store
from tests.conftest import auth, enroll_user, seed_course

COMPLETE_ROUTE = "/v1/lessons/{lesson_id}/complete"


def _get_sample(name: str, labels: dict | None = None) -> float:
    """Read a metric sample's current value from the global registry."""
    value = REGISTRY.get_sample_value(name, labels=labels or {})
    return value if value is not None else 0.0


def test_request_counter_increments(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/health")
    after = _get_sample("http_requests_total", labels)
    assert after - before >= 1


def test_request_duration_histogram_observes(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "/health"}
    before = _get_sample("http_request_duration_seconds_count", labels)
    client.get("/health")
    after = _get_sample("http_request_duration_seconds_count", labels)
    assert after - before >= 1


def test_endpoint_label_is_route_template(
    client: TestClient, store: Store, token: str
) -> None:
    """Lesson ids must not leak into label values."""
    seeded = asyncio.run(seed_course(store))
    asyncio.run(enroll_user(store, "test-user", seeded))
    labels = {"method": "POST", "endpoint": COMPLETE_ROUTE, "status_code": "200"}
    before = _get_sample("http_requests_total", labels)

    for lesson in seeded.lessons[:2]:
        client.post(f"/v1/lessons/{lesson.id}/complete", headers=auth(token))

    assert _get_sample("http_requests_total", labels) - before == 2
    assert (
        _get_sample(
            "http_requests_total",
            {
                "method": "POST",
                "endpoint": f"/v1/lessons/{seeded.lessons[0].id}/complete",
                "status_code": "200",
            },
        )
        == 0.0
    )


def test_unmatched_paths_share_one_label(client: TestClient) -> None:
    labels = {"method": "GET", "endpoint": "unmatched", "status_code": "404"}
    before = _get_sample("http_requests_total", labels)
    client.get("/no/such/thing")
    client.get("/another/missing/path")
    assert _get_sample("http_requests_total", labels) - before == 2


def test_lesson_completion_counters(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(1,)))
    asyncio.run(enroll_user(store, "test-user", seeded))
    url = f"/v1/lessons/{seeded.lessons[0].id}/complete"
    recorded = _get_sample("lessons_completed_total", {"outcome": "recorded"})
    duplicate = _get_sample("lessons_completed_total", {"outcome": "duplicate"})
    completions = _get_sample("course_completions_total")

    client.post(url, headers=auth(token))
    client.post(url, headers=auth(token))

    assert _get_sample("lessons_completed_total", {"outcome": "recorded"}) - recorded == 1
    assert _get_sample("lessons_completed_total", {"outcome": "duplicate"}) - duplicate == 1
    assert _get_sample("course_completions_total") - completions == 1


def test_metrics_endpoint_returns_prometheus_format(client: TestClient) -> None:
    client.get("/health")
    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert "certificates_issued_total" in resp.text


def test_metrics_endpoint_not_self_instrumented(client: TestClient) -> None:
    """Requests to /metrics itself should not be counted in metrics."""
    labels = {"method": "GET", "endpoint": "/metrics", "status_code": "200"}
    before = _get_sample("http_requests_total", labels)
    client.get("/metrics")
    client.get("/metrics")
    assert _get_sample("http_requests_total", labels) == before
