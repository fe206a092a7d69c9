from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID, uuid4


class NotificationType(str, enum.Enum):
    COURSE_ENROLLED = "course_enrolled"
    COURSE_COMPLETED = "course_completed"
    CERTIFICATE_ISSUED = "certificate_issued"
    NEW_COURSE_CONTENT = "new_course_content"


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: str
    type: NotificationType
    title: str
    message: str
    created_at: datetime
    link: str | None = None
    is_read: bool = False

    @staticmethod
    def new(
        *,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        created_at: datetime,
        link: str | None = None,
    ) -> Notification:
        return Notification(
            id=uuid4(),
            user_id=user_id,
            type=type,
            title=title,
            message=message,
            created_at=created_at,
            link=link,
        )
