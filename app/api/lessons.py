"""Lesson endpoints: completion tracking and authoring.

  POST   /v1/lessons/{lesson_id}/complete   mark done for the caller
  PUT    /v1/lessons/{lesson_id}            partial update (owner/admin)
  DELETE /v1/lessons/{lesson_id}            delete (owner/admin)

Authoring routes require the instructor or admin role up front; the
service then checks ownership of the specific course.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from app.api.dependencies import IssuerDep, NotifierDep, StoreDep, UserDep, require_any_role
from app.models.course import Lesson
from app.models.principal import ADMIN, INSTRUCTOR, Principal
from app.services import authoring_service, completion_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/lessons", tags=["lessons"])

_require_author = require_any_role({ADMIN, INSTRUCTOR})


class CompletionOut(BaseModel):
    progress: int
    completed_lessons: int
    total_lessons: int
    is_completed: bool
    certificate_issued: bool
    message: str


class LessonUpdateIn(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    order: int | None = Field(default=None, ge=0)
    is_published: bool | None = None
    is_free: bool | None = None
    video_duration: int | None = Field(default=None, ge=0)


class LessonOut(BaseModel):
    id: UUID
    module_id: UUID
    title: str
    order: int
    is_published: bool
    is_free: bool
    video_duration: int

    @classmethod
    def from_lesson(cls, lesson: Lesson) -> LessonOut:
        return cls(
            id=lesson.id,
            module_id=lesson.module_id,
            title=lesson.title,
            order=lesson.order,
            is_published=lesson.is_published,
            is_free=lesson.is_free,
            video_duration=lesson.video_duration,
        )


@router.post("/{lesson_id}/complete", response_model=CompletionOut)
async def complete_lesson(
    lesson_id: UUID,
    principal: UserDep,
    store: StoreDep,
    issuer: IssuerDep,
    notifier: NotifierDep,
) -> CompletionOut:
    result = await completion_service.mark_lesson_complete(
        store, principal, lesson_id, issuer=issuer, notifier=notifier
    )
    return CompletionOut(
        progress=result.progress,
        completed_lessons=result.completed_lesson_count,
        total_lessons=result.total_lesson_count,
        is_completed=result.is_completed,
        certificate_issued=result.certificate_issued,
        message=(
            "Lesson already completed"
            if result.already_completed
            else "Lesson marked as complete"
        ),
    )


@router.put("/{lesson_id}", response_model=LessonOut)
async def update_lesson(
    lesson_id: UUID,
    body: LessonUpdateIn,
    principal: Annotated[Principal, Depends(_require_author)],
    store: StoreDep,
    notifier: NotifierDep,
) -> LessonOut:
    lesson = await authoring_service.update_lesson(
        store, notifier, principal, lesson_id, body.model_dump(exclude_unset=True)
    )
    return LessonOut.from_lesson(lesson)


@router.delete("/{lesson_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_lesson(
    lesson_id: UUID,
    principal: Annotated[Principal, Depends(_require_author)],
    store: StoreDep,
) -> Response:
    await authoring_service.delete_lesson(store, principal, lesson_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
