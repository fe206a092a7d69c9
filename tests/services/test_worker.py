"""Certificate backfill as run by the background worker."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from uuid import uuid4

import pytest

from app import worker
from app.exceptions import RenderError
from app.models.certificate import Certificate
from app.repos.store import Store
from app.services.task_queue import CERTIFICATE_RENDER_QUEUE
from tests.conftest import FakeRenderer, seed_course

ISSUED = datetime(2026, 4, 1, tzinfo=UTC)


def _unrendered(store: Store, course_id, number: str = "CERT-202604-WORKER01") -> Certificate:
    certificate = Certificate.new(
        user_id="learner-1",
        course_id=course_id,
        certificate_number=number,
        issued_at=ISSUED,
        recipient_name="Grace Hopper",
    )
    asyncio.run(store.certificates.add(certificate))
    return certificate


def test_certificate_render_handler_is_registered() -> None:
    assert worker.HANDLERS[CERTIFICATE_RENDER_QUEUE] is worker.handle_certificate_render


def test_backfill_renders_and_stores_url(store: Store, renderer: FakeRenderer, queue) -> None:
    seeded = asyncio.run(seed_course(store))
    certificate = _unrendered(store, seeded.course.id)

    url = asyncio.run(
        worker.backfill_certificate(store, certificate.id, renderer=renderer, queue=queue)
    )

    assert url == "/files/CERT-202604-WORKER01.pdf"
    stored = asyncio.run(store.certificates.get_by_id(certificate.id))
    assert stored.certificate_url == url
    [call] = renderer.calls
    assert call["user_name"] == "Grace Hopper"
    assert call["course_name"] == "Python Basics"
    assert call["instructor_name"] == "Ada Lovelace"


def test_backfill_skips_rendered_certificates(store: Store, renderer: FakeRenderer, queue) -> None:
    seeded = asyncio.run(seed_course(store))
    certificate = Certificate.new(
        user_id="learner-1",
        course_id=seeded.course.id,
        certificate_number="CERT-202604-DONE0001",
        issued_at=ISSUED,
        certificate_url="/files/existing.pdf",
    )
    asyncio.run(store.certificates.add(certificate))

    url = asyncio.run(
        worker.backfill_certificate(store, certificate.id, renderer=renderer, queue=queue)
    )

    assert url == "/files/existing.pdf"
    assert renderer.calls == []


def test_backfill_missing_certificate_or_course(store: Store, renderer: FakeRenderer, queue) -> None:
    assert (
        asyncio.run(worker.backfill_certificate(store, uuid4(), renderer=renderer, queue=queue))
        is None
    )
    orphan = _unrendered(store, uuid4(), number="CERT-202604-ORPHAN01")
    assert (
        asyncio.run(worker.backfill_certificate(store, orphan.id, renderer=renderer, queue=queue))
        is None
    )
    assert renderer.calls == []


def test_backfill_propagates_render_failure(store: Store, queue) -> None:
    seeded = asyncio.run(seed_course(store))
    certificate = _unrendered(store, seeded.course.id)

    with pytest.raises(RenderError):
        asyncio.run(
            worker.backfill_certificate(
                store, certificate.id, renderer=FakeRenderer(fail=True), queue=queue
            )
        )
    assert asyncio.run(store.certificates.get_by_id(certificate.id)).certificate_url is None


def test_handler_uses_task_payload(
    store: Store, renderer: FakeRenderer, monkeypatch: pytest.MonkeyPatch
) -> None:
    seeded = asyncio.run(seed_course(store))
    certificate = _unrendered(store, seeded.course.id)
    monkeypatch.setattr(worker, "memory_store", store)
    monkeypatch.setattr(worker, "default_renderer", lambda: renderer)

    asyncio.run(worker.handle_certificate_render({"certificate_id": str(certificate.id)}))

    stored = asyncio.run(store.certificates.get_by_id(certificate.id))
    assert stored.certificate_url == "/files/CERT-202604-WORKER01.pdf"
