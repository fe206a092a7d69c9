"""Tests for the request context middleware.

Verifies that every response gets an X-Request-ID header (generated or
echoed from the request) and that the ID reaches log records.
"""

from __future__ import annotations

import logging
import uuid

import pytest
from fastapi.testclient import TestClient


def test_request_id_generated_when_not_provided(client: TestClient) -> None:
    resp = client.get("/health")
    req_id = resp.headers.get("x-request-id")
    assert req_id is not None
    uuid.UUID(req_id)  # raises ValueError if invalid


def test_request_id_echoed_when_provided(client: TestClient) -> None:
    custom_id = "my-custom-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": custom_id})
    assert resp.headers.get("x-request-id") == custom_id


def test_request_id_present_on_error_responses(client: TestClient) -> None:
    """Even error responses (401, 404) get an X-Request-ID header."""
    resp = client.get("/v1/certificates")  # No auth token -> 401
    assert resp.status_code == 401
    assert resp.headers.get("x-request-id") is not None


def test_summary_line_is_logged(
    client: TestClient, caplog: pytest.LogCaptureFixture
) -> None:
    with caplog.at_level(logging.INFO, logger="app.middleware.request_context"):
        client.get("/health", headers={"X-Request-ID": "trace-42"})

    [record] = [r for r in caplog.records if r.name == "app.middleware.request_context"]
    assert record.path == "/health"
    assert record.status_code == 200
    assert record.method == "GET"
