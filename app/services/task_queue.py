"""Background task queue on Redis lists (in-memory when REDIS_URL is unset).

WHAT GOES THROUGH IT
---------------------
Only work that is allowed to happen later.  Today that is one queue:

  certificate_render   a certificate row exists but its PDF could not be
                       produced during issuance; payload is
                       {"certificate_id": "<uuid>"}.  The worker renders
                       the file and backfills certificate_url.

The request that enqueues never waits on the task.  Completing a lesson
must succeed even when the renderer is down, so rendering is retried
out of band instead of failing the request.

PRODUCER / CONSUMER
--------------------
  API:     LPUSH tasks:<queue> <json>      (head in)
  Worker:  BRPOP tasks:<queue> <timeout>   (tail out)

Head-in, tail-out gives FIFO order.  BRPOP blocks inside Redis, so an
idle worker costs nothing.  Delivery is at-most-once: a worker that dies
mid-task loses it.  For certificates that is acceptable because the
download endpoint renders on demand whenever the URL is still missing.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from app.core.metrics import QUEUE_DEPTH
from app.db.redis import redis_pool

CERTIFICATE_RENDER_QUEUE = "certificate_render"


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    queue: str
    payload: dict


@runtime_checkable
class TaskQueue(Protocol):
    async def enqueue(self, queue: str, payload: dict) -> Task: ...
    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None: ...
    async def queue_length(self, queue: str) -> int: ...


class InMemoryTaskQueue:
    """Per-process FIFO lists, for dev and tests."""

    def __init__(self) -> None:
        self._queues: dict[str, list[Task]] = {}

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        tasks = self._queues.setdefault(queue, [])
        tasks.append(task)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def dequeue(self, queue: str, timeout: int = 0) -> Task | None:
        tasks = self._queues.get(queue, [])
        if not tasks:
            return None
        task = tasks.pop(0)
        QUEUE_DEPTH.labels(queue_name=queue).set(len(tasks))
        return task

    async def queue_length(self, queue: str) -> int:
        return len(self._queues.get(queue, []))

    def clear(self) -> None:
        self._queues.clear()


class RedisTaskQueue:
    _PREFIX = "tasks:"

    def __init__(self, redis_client) -> None:
        self._redis = redis_client

    async def enqueue(self, queue: str, payload: dict) -> Task:
        task = Task(id=str(uuid.uuid4()), queue=queue, payload=payload)
        body = json.dumps({"id": task.id, "queue": task.queue, "payload": task.payload})
        depth = await self._redis.lpush(f"{self._PREFIX}{queue}", body)
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return task

    async def dequeue(self, queue: str, timeout: int = 5) -> Task | None:
        result = await self._redis.brpop(f"{self._PREFIX}{queue}", timeout=timeout)
        if result is None:
            return None
        _, body = result
        return Task(**json.loads(body))

    async def queue_length(self, queue: str) -> int:
        depth = await self._redis.llen(f"{self._PREFIX}{queue}")
        QUEUE_DEPTH.labels(queue_name=queue).set(depth)
        return depth


if redis_pool is not None:
    task_queue: TaskQueue = RedisTaskQueue(redis_pool)
else:
    task_queue = InMemoryTaskQueue()
