from __future__ import annotations

from typing import Protocol

from app.models.notification import Notification


class NotificationRepo(Protocol):
    async def add_many(self, notifications: list[Notification]) -> None: ...
    async def list_by_user(self, user_id: str) -> list[Notification]: ...


class InMemoryNotificationRepo:
    def __init__(self) -> None:
        self._store: list[Notification] = []

    async def add_many(self, notifications: list[Notification]) -> None:
        self._store.extend(notifications)

    async def list_by_user(self, user_id: str) -> list[Notification]:
        return [n for n in self._store if n.user_id == user_id]
