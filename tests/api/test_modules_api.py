from __future__ import annotations

import asyncio
from uuid import uuid4

from fastapi.testclient import TestClient

from app.repos.store import Store
from tests.conftest import auth, seed_course


def test_create_lesson_in_module(
    client: TestClient, store: Store, instructor_token: str
) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(2,)))

    resp = client.post(
        f"/v1/modules/{seeded.modules[0].id}/lessons",
        json={"title": "Generators", "video_duration": 90, "is_published": True},
        headers=auth(instructor_token),
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["order"] == 2
    assert body["module_id"] == str(seeded.modules[0].id)
    assert body["video_duration"] == 90
    course = asyncio.run(store.catalog.get_course(seeded.course.id))
    assert course.duration == 1290


def test_create_lesson_validates_body(
    client: TestClient, store: Store, instructor_token: str
) -> None:
    seeded = asyncio.run(seed_course(store))
    url = f"/v1/modules/{seeded.modules[0].id}/lessons"

    assert client.post(url, json={"title": ""}, headers=auth(instructor_token)).status_code == 422
    assert (
        client.post(
            url, json={"title": "ok", "video_duration": -3}, headers=auth(instructor_token)
        ).status_code
        == 422
    )


def test_create_lesson_requires_author_role(client: TestClient, store: Store, token: str) -> None:
    seeded = asyncio.run(seed_course(store))
    resp = client.post(
        f"/v1/modules/{seeded.modules[0].id}/lessons",
        json={"title": "Sneaky"},
        headers=auth(token),
    )
    assert resp.status_code == 403


def test_create_lesson_in_unknown_module(client: TestClient, admin_token: str) -> None:
    resp = client.post(
        f"/v1/modules/{uuid4()}/lessons", json={"title": "x"}, headers=auth(admin_token)
    )
    assert resp.status_code == 404


def test_delete_module(client: TestClient, store: Store, admin_token: str) -> None:
    seeded = asyncio.run(seed_course(store, lessons_per_module=(1, 2)))

    resp = client.delete(f"/v1/modules/{seeded.modules[1].id}", headers=auth(admin_token))

    assert resp.status_code == 204
    course = asyncio.run(store.catalog.get_course(seeded.course.id))
    assert course.duration == 600
    assert asyncio.run(store.catalog.get_module(seeded.modules[1].id)) is None
