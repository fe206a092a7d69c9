"""PostgreSQL implementation of NotificationRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.db.tables import NotificationRow
from app.models.notification import Notification, NotificationType


class PgNotificationRepo:
    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def add_many(self, notifications: list[Notification]) -> None:
        # SAVEPOINT: a failed insert must not roll back the caller's progress write.
        async with self._session.begin_nested():
            self._session.add_all(
                NotificationRow(
                    id=n.id,
                    user_id=n.user_id,
                    type=n.type.value,
                    title=n.title,
                    message=n.message,
                    link=n.link,
                    is_read=n.is_read,
                    created_at=n.created_at,
                )
                for n in notifications
            )

    async def list_by_user(self, user_id: str) -> list[Notification]:
        stmt = (
            select(NotificationRow)
            .where(NotificationRow.user_id == user_id)
            .order_by(NotificationRow.created_at.desc())
        )
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            Notification(
                id=r.id,
                user_id=r.user_id,
                type=NotificationType(r.type),
                title=r.title,
                message=r.message,
                created_at=r.created_at,
                link=r.link,
                is_read=r.is_read,
            )
            for r in rows
        ]
