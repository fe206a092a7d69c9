from __future__ import annotations

import asyncio
import sys
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from app.api.dependencies import get_renderer, get_store, get_task_queue
from app.main import app
from app.models.course import Course, Lesson, Module
from app.models.enrollment import Enrollment
from app.repos.store import Store, in_memory_store
from app.services import token_service
from app.services.certificate_renderer import RenderResult
from app.services.certificate_service import CertificateIssuer
from app.services.notification_service import NotificationService
from app.services.task_queue import InMemoryTaskQueue

# Ensure repo root is on sys.path so `import app` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

INSTRUCTOR_ID = "instructor-1"


class FakeRenderer:
    """Records every render call; fails while ``fail`` is True."""

    def __init__(self, *, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[dict] = []

    async def render(
        self,
        user_name: str,
        course_name: str,
        completion_date: datetime,
        certificate_number: str,
        instructor_name: str | None = None,
        organization_name: str | None = None,
    ) -> RenderResult:
        # Yield once so concurrent issuers interleave like real I/O would.
        await asyncio.sleep(0)
        self.calls.append(
            {
                "user_name": user_name,
                "course_name": course_name,
                "certificate_number": certificate_number,
                "instructor_name": instructor_name,
                "organization_name": organization_name,
            }
        )
        if self.fail:
            return RenderResult(success=False, error="renderer offline")
        return RenderResult(success=True, file_url=f"/files/{certificate_number}.pdf")


class FailingNotificationRepo:
    async def add_many(self, notifications) -> None:
        raise ConnectionError("notification store unavailable")

    async def list_by_user(self, user_id: str) -> list:
        return []


@dataclass
class SeededCourse:
    course: Course
    modules: list[Module] = field(default_factory=list)
    lessons: list[Lesson] = field(default_factory=list)


async def seed_course(
    store: Store,
    *,
    lessons_per_module: tuple[int, ...] = (3,),
    published: bool = True,
    video_duration: int = 600,
    slug: str = "python-basics",
    course_published: bool = True,
) -> SeededCourse:
    """Create a course with one module per entry in ``lessons_per_module``."""
    course = Course.new(
        slug=slug,
        title="Python Basics",
        instructor_id=INSTRUCTOR_ID,
        instructor_name="Ada Lovelace",
        is_published=course_published,
    )
    await store.catalog.add_course(course)
    seeded = SeededCourse(course=course)
    for position, count in enumerate(lessons_per_module):
        module = Module.new(course_id=course.id, order=position, title=f"Module {position + 1}")
        await store.catalog.add_module(module)
        seeded.modules.append(module)
        for i in range(count):
            lesson = Lesson.new(
                module_id=module.id,
                title=f"Lesson {position + 1}.{i + 1}",
                order=i,
                is_published=published,
                video_duration=video_duration,
            )
            await store.catalog.add_lesson(lesson)
            seeded.lessons.append(lesson)
    await store.catalog.set_course_duration(
        course.id, video_duration * sum(lessons_per_module)
    )
    seeded.course = await store.catalog.get_course(course.id)
    return seeded


async def enroll_user(store: Store, user_id: str, seeded: SeededCourse) -> Enrollment:
    enrollment = Enrollment.new(
        user_id=user_id, course_id=seeded.course.id, started_at=datetime(2026, 1, 5)
    )
    await store.enrollments.add(enrollment)
    return enrollment


@pytest.fixture
def store() -> Store:
    return in_memory_store()


@pytest.fixture
def renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def queue() -> InMemoryTaskQueue:
    return InMemoryTaskQueue()


@pytest.fixture
def notifier(store: Store) -> NotificationService:
    return NotificationService(store.notifications)


@pytest.fixture
def issuer(
    store: Store,
    renderer: FakeRenderer,
    notifier: NotificationService,
    queue: InMemoryTaskQueue,
) -> CertificateIssuer:
    return CertificateIssuer(
        store.certificates, renderer, notifier, queue, organization_name="Test Academy"
    )


@pytest.fixture(autouse=True)
def override_dependencies(store: Store, renderer: FakeRenderer, queue: InMemoryTaskQueue):
    """Point every request at this test's store, renderer and queue."""

    async def scoped_store():
        unit = store.scoped()
        yield unit
        await unit.run_post_commit()

    app.dependency_overrides[get_store] = scoped_store
    app.dependency_overrides[get_renderer] = lambda: renderer
    app.dependency_overrides[get_task_queue] = lambda: queue
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
    name: str = "",
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles, name=name)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token(name="Test Learner")


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="test-admin", roles=["admin"], name="Site Admin")


@pytest.fixture
def instructor_token() -> str:
    return mint_token(username=INSTRUCTOR_ID, roles=["instructor"], name="Ada Lovelace")
