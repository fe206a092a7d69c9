"""Enrollment and progress report endpoints."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from fastapi.testclient import TestClient

from app.repos.store import Store
from tests.conftest import auth, seed_course


def test_enroll_requires_auth(client: TestClient, store: Store) -> None:
    asyncio.run(seed_course(store))
    assert client.post("/v1/courses/python-basics/enroll").status_code == 401


def test_enroll_by_slug(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store))

    resp = client.post("/v1/courses/python-basics/enroll", headers=auth(token))

    assert resp.status_code == 201
    body = resp.json()
    assert body["course_id"] == str(seeded.course.id)
    assert body["status"] == "active"
    assert body["progress"] == 0
    assert body["completed_at"] is None


def test_enroll_twice_conflicts(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store))
    url = f"/v1/courses/{seeded.course.id}/enroll"

    assert client.post(url, headers=auth(token)).status_code == 201
    assert client.post(url, headers=auth(token)).status_code == 409


def test_enroll_in_unknown_or_unpublished_course(
    client: TestClient, store: Store, token: str
) -> None:
    asyncio.run(seed_course(store, course_published=False))

    assert client.post("/v1/courses/python-basics/enroll", headers=auth(token)).status_code == 404
    assert client.post("/v1/courses/nope/enroll", headers=auth(token)).status_code == 404


def test_progress_report(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(2, 1)))
    draft = replace(seeded.lessons[2], is_published=False)
    asyncio.run(store.catalog.update_lesson(draft))
    client.post("/v1/courses/python-basics/enroll", headers=auth(token))
    client.post(f"/v1/lessons/{seeded.lessons[0].id}/complete", headers=auth(token))

    resp = client.get("/v1/courses/python-basics/progress", headers=auth(token))

    assert resp.status_code == 200
    body = resp.json()
    assert body["total_lessons"] == 2
    assert body["completed_lessons"] == 1
    # Stored progress uses every lesson as the denominator: 1 of 3.
    assert body["enrollment"]["progress"] == 33
    first, second = body["module_progress"]
    assert first["progress"] == 50
    assert first["lessons"][0] == {
        "id": str(seeded.lessons[0].id),
        "title": "Lesson 1.1",
        "is_completed": True,
    }
    assert second == {
        "id": str(seeded.modules[1].id),
        "title": "Module 2",
        "total_lessons": 0,
        "completed_lessons": 0,
        "progress": 0,
        "lessons": [],
    }


def test_progress_requires_enrollment(client: TestClient, store: Store, token: str) -> None:
    asyncio.run(seed_course(store))
    resp = client.get("/v1/courses/python-basics/progress", headers=auth(token))
    assert resp.status_code == 404
