from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.dependencies import StoreDep, require_any_role
from app.models.principal import ADMIN, Principal
from app.services import content_reconciler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin", tags=["admin"])


class DurationOut(BaseModel):
    course_id: UUID
    title: str
    duration: int


class RecalculateOut(BaseModel):
    updated: int
    courses: list[DurationOut]


@router.post("/courses/recalculate-durations", response_model=RecalculateOut)
async def recalculate_durations(
    principal: Annotated[Principal, Depends(require_any_role({ADMIN}))],
    store: StoreDep,
) -> RecalculateOut:
    logger.info("Duration recompute requested by user=%s", principal.user_id)
    updates = await content_reconciler.recalculate_all_durations(store)
    return RecalculateOut(
        updated=len(updates),
        courses=[
            DurationOut(course_id=u.course_id, title=u.title, duration=u.duration)
            for u in updates
        ],
    )
