from __future__ import annotations

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from pydantic import BaseModel, Field

from app.api.dependencies import NotifierDep, StoreDep, require_any_role
from app.api.lessons import LessonOut
from app.models.principal import ADMIN, INSTRUCTOR, Principal
from app.services import authoring_service

router = APIRouter(prefix="/v1/modules", tags=["modules"])

_require_author = require_any_role({ADMIN, INSTRUCTOR})


class LessonCreateIn(BaseModel):
    title: str = Field(min_length=1, max_length=500)
    order: int | None = Field(default=None, ge=0)
    is_published: bool = False
    is_free: bool = False
    video_duration: int = Field(default=0, ge=0)


@router.post(
    "/{module_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
async def create_lesson(
    module_id: UUID,
    body: LessonCreateIn,
    principal: Annotated[Principal, Depends(_require_author)],
    store: StoreDep,
    notifier: NotifierDep,
) -> LessonOut:
    lesson = await authoring_service.create_lesson(
        store,
        notifier,
        principal,
        module_id,
        authoring_service.LessonDraft(**body.model_dump()),
    )
    return LessonOut.from_lesson(lesson)


@router.delete("/{module_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_module(
    module_id: UUID,
    principal: Annotated[Principal, Depends(_require_author)],
    store: StoreDep,
) -> Response:
    await authoring_service.delete_module(store, principal, module_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
