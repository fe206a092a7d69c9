"""Notification sink, fire-and-forget from the engine's point of view.

Every failure is logged and counted, never raised: a lost "course
completed" message must not undo the completion that caused it.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Protocol

from app.core.metrics import NOTIFICATIONS_FAILED
from app.models.notification import Notification, NotificationType
from app.repos.notification_repo import NotificationRepo

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None: ...

    async def notify_many(
        self,
        user_ids: list[str],
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None: ...


class NotificationService:
    """Persists notifications through the notification repo."""

    def __init__(self, repo: NotificationRepo) -> None:
        self._repo = repo

    async def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        await self.notify_many([user_id], type, title, message, link)

    async def notify_many(
        self,
        user_ids: list[str],
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
    ) -> None:
        if not user_ids:
            return
        now = datetime.now(UTC)
        batch = [
            Notification.new(
                user_id=user_id,
                type=type,
                title=title,
                message=message,
                link=link,
                created_at=now,
            )
            for user_id in user_ids
        ]
        try:
            await self._repo.add_many(batch)
        except Exception:
            NOTIFICATIONS_FAILED.labels(type=type.value).inc(len(batch))
            logger.warning(
                "Dropped %d %s notification(s)", len(batch), type.value, exc_info=True
            )
            return
        logger.debug("Stored %d %s notification(s)", len(batch), type.value)
