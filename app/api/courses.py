"""Course enrollment and progress endpoints.

  POST /v1/courses/{course_id}/enroll    free join -> 201
  GET  /v1/courses/{course_id}/progress  learner's progress report

``course_id`` accepts either the course UUID or its slug.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel

from app.api.dependencies import NotifierDep, StoreDep, UserDep
from app.services import enrollment_service

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class EnrollmentOut(BaseModel):
    id: UUID
    course_id: UUID
    status: str
    progress: int
    started_at: datetime
    completed_at: datetime | None = None


class LessonStatusOut(BaseModel):
    id: UUID
    title: str
    is_completed: bool


class ModuleProgressOut(BaseModel):
    id: UUID
    title: str
    total_lessons: int
    completed_lessons: int
    progress: int
    lessons: list[LessonStatusOut]


class ProgressOut(BaseModel):
    enrollment: EnrollmentOut
    total_lessons: int
    completed_lessons: int
    module_progress: list[ModuleProgressOut]


def _enrollment_out(e) -> EnrollmentOut:
    return EnrollmentOut(
        id=e.id,
        course_id=e.course_id,
        status=e.status.value,
        progress=e.progress,
        started_at=e.started_at,
        completed_at=e.completed_at,
    )


@router.post(
    "/{course_id}/enroll",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_in_course(
    course_id: str,
    principal: UserDep,
    store: StoreDep,
    notifier: NotifierDep,
) -> EnrollmentOut:
    enrollment = await enrollment_service.enroll(store, notifier, principal, course_id)
    return _enrollment_out(enrollment)


@router.get("/{course_id}/progress", response_model=ProgressOut)
async def get_progress(course_id: str, principal: UserDep, store: StoreDep) -> ProgressOut:
    report = await enrollment_service.get_course_progress(store, principal, course_id)
    return ProgressOut(
        enrollment=_enrollment_out(report.enrollment),
        total_lessons=report.total_lessons,
        completed_lessons=report.completed_lessons,
        module_progress=[
            ModuleProgressOut(
                id=m.module_id,
                title=m.title,
                total_lessons=m.total_lessons,
                completed_lessons=m.completed_lessons,
                progress=m.percent,
                lessons=[
                    LessonStatusOut(id=lesson_id, title=title, is_completed=done)
                    for lesson_id, title, done in m.lessons
                ],
            )
            for m in report.modules
        ],
    )
