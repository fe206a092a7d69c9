"""Repository bundle handed to the engine.

The engine never imports a concrete repo: it receives a Store, and the
Store decides whether rows live in PostgreSQL (one AsyncSession per unit
of work) or in process memory (dev, tests).

Work that other processes act on, such as queueing a render task, must
not run before the rows it points at are visible.  Such work is
registered with ``on_commit`` and run by whoever owns the unit of work
once it has committed; a rolled-back unit drops it.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace

from sqlalchemy.ext.asyncio import AsyncSession

from app.repos.catalog_repo import CatalogRepo, InMemoryCatalogRepo
from app.repos.certificate_repo import CertificateRepo, InMemoryCertificateRepo
from app.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from app.repos.notification_repo import InMemoryNotificationRepo, NotificationRepo
from app.repos.pg_catalog_repo import PgCatalogRepo
from app.repos.pg_certificate_repo import PgCertificateRepo
from app.repos.pg_enrollment_repo import PgEnrollmentRepo
from app.repos.pg_notification_repo import PgNotificationRepo

logger = logging.getLogger(__name__)

PostCommitCallback = Callable[[], Awaitable[None]]


@dataclass(frozen=True, slots=True)
class Store:
    catalog: CatalogRepo
    enrollments: EnrollmentRepo
    certificates: CertificateRepo
    notifications: NotificationRepo
    post_commit: list[PostCommitCallback] = field(
        default_factory=list, compare=False, repr=False
    )

    def scoped(self) -> Store:
        """Same repos, own post-commit list; for a shared in-memory store."""
        return replace(self, post_commit=[])

    def on_commit(self, callback: PostCommitCallback) -> None:
        self.post_commit.append(callback)

    async def run_post_commit(self) -> None:
        """Run and clear the registered callbacks.

        The data is already committed, so a failing callback is logged
        and the rest still run.
        """
        callbacks = list(self.post_commit)
        self.post_commit.clear()
        for callback in callbacks:
            try:
                await callback()
            except Exception:
                logger.exception("Post-commit callback %r failed", callback)


def in_memory_store() -> Store:
    return Store(
        catalog=InMemoryCatalogRepo(),
        enrollments=InMemoryEnrollmentRepo(),
        certificates=InMemoryCertificateRepo(),
        notifications=InMemoryNotificationRepo(),
    )


def pg_store(session: AsyncSession) -> Store:
    return Store(
        catalog=PgCatalogRepo(session),
        enrollments=PgEnrollmentRepo(session),
        certificates=PgCertificateRepo(session),
        notifications=PgNotificationRepo(session),
    )


# Process-wide fallback when DATABASE_URL is not configured.
memory_store = in_memory_store()
