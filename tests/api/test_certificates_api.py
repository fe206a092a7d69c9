"""Certificate listing, public verification and download."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

from fastapi.testclient import TestClient

from app.models.certificate import Certificate
from app.repos.store import Store
from tests.conftest import FakeRenderer, auth, mint_token, seed_course


def _certificate(store: Store, course_id, *, user_id="test-user", url=None) -> Certificate:
    certificate = Certificate.new(
        user_id=user_id,
        course_id=course_id,
        certificate_number="CERT-202605-ABCD1234",
        issued_at=datetime(2026, 5, 20, tzinfo=UTC),
        recipient_name="Test Learner",
        certificate_url=url,
    )
    asyncio.run(store.certificates.add(certificate))
    return certificate


def test_list_requires_auth(client: TestClient) -> None:
    assert client.get("/v1/certificates").status_code == 401


def test_list_only_returns_own_certificates(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store))
    mine = _certificate(store, seeded.course.id, url="/files/a.pdf")
    other = asyncio.run(seed_course(store, slug="other"))
    theirs = Certificate.new(
        user_id="someone-else",
        course_id=other.course.id,
        certificate_number="CERT-202605-ZZZZ9999",
        issued_at=datetime(2026, 5, 21, tzinfo=UTC),
    )
    asyncio.run(store.certificates.add(theirs))

    resp = client.get("/v1/certificates", headers=auth(token))

    assert resp.status_code == 200
    assert [c["id"] for c in resp.json()] == [str(mine.id)]


def test_verify_is_public(client: TestClient, store: Store) -> None:
    seeded = asyncio.run(seed_course(store))
    _certificate(store, seeded.course.id)

    resp = client.get("/v1/certificates/verify/cert-202605-abcd1234")

    assert resp.status_code == 200
    assert resp.json() == {
        "valid": True,
        "certificate_number": "CERT-202605-ABCD1234",
        "recipient_name": "Test Learner",
        "course_title": "Python Basics",
        "issued_at": "2026-05-20T00:00:00Z",
    }


def test_verify_unknown_number(client: TestClient) -> None:
    resp = client.get("/v1/certificates/verify/CERT-000000-UNKNOWN0")
    assert resp.status_code == 404


def test_download_renders_missing_file(
    client: TestClient, store: Store, renderer: FakeRenderer, token: str
) -> None:
    seeded = asyncio.run(seed_course(store))
    cert = _certificate(store, seeded.course.id)

    resp = client.get(f"/v1/certificates/{cert.id}/download", headers=auth(token))

    assert resp.status_code == 200
    assert resp.json()["certificate_url"] == "/files/CERT-202605-ABCD1234.pdf"
    assert len(renderer.calls) == 1


def test_download_is_owner_or_admin_only(
    client: TestClient, store: Store, admin_token: str
) -> None:
    seeded = asyncio.run(seed_course(store))
    cert = _certificate(store, seeded.course.id, url="/files/a.pdf")
    stranger = mint_token(username="stranger")

    assert (
        client.get(f"/v1/certificates/{cert.id}/download", headers=auth(stranger)).status_code
        == 403
    )
    assert (
        client.get(f"/v1/certificates/{cert.id}/download", headers=auth(admin_token)).status_code
        == 200
    )


def test_download_unknown_certificate(client: TestClient, token: str) -> None:
    resp = client.get(f"/v1/certificates/{uuid4()}/download", headers=auth(token))
    assert resp.status_code == 404


def test_download_when_renderer_is_down(
    client: TestClient, store: Store, renderer: FakeRenderer, token: str
) -> None:
    seeded = asyncio.run(seed_course(store))
    cert = _certificate(store, seeded.course.id)
    renderer.fail = True

    resp = client.get(f"/v1/certificates/{cert.id}/download", headers=auth(token))

    assert resp.status_code == 503
    stored = asyncio.run(store.certificates.get_by_id(cert.id))
    assert stored.certificate_url is None
