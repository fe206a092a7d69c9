"""Background worker process.

RUN:  python -m app.worker

Same image as the API, different command:
  api:    uvicorn app.main:app --host 0.0.0.0 --port 8000
  worker: python -m app.worker

The loop polls every registered queue in turn, hands each task to its
handler, and logs the outcome.  A failing task is logged and dropped;
certificates left without a file are still rendered on demand by the
download endpoint, so nothing is lost for good.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable, Coroutine
from contextlib import asynccontextmanager
from typing import Any
from uuid import UUID

from app.core.config import SETTINGS
from app.core.logging import setup_logging
from app.db import engine as db_engine
from app.repos.store import Store, memory_store, pg_store
from app.services.certificate_renderer import (
    CertificateRenderer,
    ReportLabCertificateRenderer,
)
from app.services.certificate_service import CertificateIssuer
from app.services.notification_service import NotificationService
from app.services.task_queue import (
    CERTIFICATE_RENDER_QUEUE,
    RedisTaskQueue,
    TaskQueue,
    task_queue,
)

TaskHandler = Callable[[dict], Coroutine[Any, Any, None]]

logger = logging.getLogger("worker")

HANDLERS: dict[str, TaskHandler] = {}


def register_handler(queue: str):
    """Decorator: register a coroutine as the handler for a queue."""

    def decorator(func):
        HANDLERS[queue] = func
        return func

    return decorator


@asynccontextmanager
async def store_scope() -> AsyncIterator[Store]:
    """One unit of work per task, mirroring the per-request store."""
    if db_engine.async_session_factory is None:
        store = memory_store.scoped()
        yield store
    else:
        async with db_engine.session_scope() as session:
            store = pg_store(session)
            yield store
    # Not reached when the handler raised: the work was rolled back.
    await store.run_post_commit()


def default_renderer() -> CertificateRenderer:
    return ReportLabCertificateRenderer(
        SETTINGS.certificate_dir, SETTINGS.certificate_base_url, SETTINGS.app_base_url
    )


async def backfill_certificate(
    store: Store,
    certificate_id: UUID,
    *,
    renderer: CertificateRenderer,
    queue: TaskQueue,
) -> str | None:
    """Render and store the file for one certificate; returns its URL.

    Returns None when the certificate or its course no longer exists.
    Raises RenderError when the renderer fails again.
    """
    certificate = await store.certificates.get_by_id(certificate_id)
    if certificate is None:
        logger.warning("Certificate %s vanished before backfill", certificate_id)
        return None
    if certificate.certificate_url:
        return certificate.certificate_url
    course = await store.catalog.get_course(certificate.course_id)
    if course is None:
        logger.warning("Course of certificate %s is gone; skipping", certificate_id)
        return None
    issuer = CertificateIssuer(
        store.certificates,
        renderer,
        NotificationService(store.notifications),
        queue,
        organization_name=SETTINGS.organization_name,
    )
    updated = await issuer.backfill(certificate, course)
    return updated.certificate_url


@register_handler(CERTIFICATE_RENDER_QUEUE)
async def handle_certificate_render(payload: dict) -> None:
    certificate_id = UUID(payload["certificate_id"])
    async with store_scope() as store:
        url = await backfill_certificate(
            store, certificate_id, renderer=default_renderer(), queue=task_queue
        )
    if url:
        logger.info("Certificate %s file ready at %s", certificate_id, url)


async def run_worker() -> None:
    """Poll all registered queues and dispatch tasks to handlers."""
    queues = list(HANDLERS.keys())
    logger.info("Worker started, listening on queues: %s", queues)

    while True:
        for queue_name in queues:
            task = await task_queue.dequeue(queue_name, timeout=1)
            if task is None:
                continue

            handler = HANDLERS[queue_name]
            extra = {"task_id": task.id, "queue": queue_name}
            try:
                await handler(task.payload)
                logger.info("Task %s on [%s] completed", task.id, queue_name, extra=extra)
            except Exception:
                # No dead-letter queue: the download path re-renders on demand.
                logger.exception("Task %s on [%s] failed", task.id, queue_name, extra=extra)
        if not isinstance(task_queue, RedisTaskQueue):
            # In-memory dequeue never blocks; without this the loop would spin.
            await asyncio.sleep(1)


if __name__ == "__main__":
    setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)
    asyncio.run(run_worker())
