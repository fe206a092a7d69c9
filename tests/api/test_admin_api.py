from __future__ import annotations

import asyncio

from fastapi.testclient import TestClient

from app.repos.store import Store
from tests.conftest import auth, seed_course


def test_recalculate_durations(client: TestClient, store: Store, admin_token: str) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(2,), video_duration=45))
    asyncio.run(store.catalog.set_course_duration(seeded.course.id, 1))

    resp = client.post("/v1/admin/courses/recalculate-durations", headers=auth(admin_token))

    assert resp.status_code == 200
    assert resp.json() == {
        "updated": 1,
        "courses": [
            {"course_id": str(seeded.course.id), "title": "Python Basics", "duration": 90}
        ],
    }


def test_recalculate_requires_admin(
    client: TestClient, token: str, instructor_token: str
) -> None:
    url = "/v1/admin/courses/recalculate-durations"
    assert client.post(url).status_code == 401
    assert client.post(url, headers=auth(token)).status_code == 403
    assert client.post(url, headers=auth(instructor_token)).status_code == 403
