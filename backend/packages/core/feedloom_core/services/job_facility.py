"""
Job scheduling facility.

The scheduler talks to the JobFacility protocol; ArqJobFacility binds it
to an arq Redis pool. Each obligation key maps to at most one queued arq
job through a pointer key, so a registration always replaces the
previous one.
"""

import uuid
from datetime import datetime
from typing import Protocol

from arq.connections import ArqRedis
from arq.constants import default_queue_name, job_key_prefix

from feedloom_core.redis_keys import RedisKeys

FETCH_TASK_NAME = "fetch_source_task"


class JobRejectedError(Exception):
    """arq declined to enqueue a job."""


class JobFacility(Protocol):
    """Operations the scheduler needs from a delayed-job backend."""

    async def schedule_at(self, when: datetime, obligation_key: str, source_id: str) -> str: ...

    async def enqueue_now(self, obligation_key: str, source_id: str) -> str: ...

    async def cancel(self, obligation_key: str) -> bool: ...

    async def has_scheduled(self, obligation_key: str) -> bool: ...

    async def is_current(self, obligation_key: str, job_id: str) -> bool: ...

    async def acquire_run_lock(self, obligation_key: str, ttl_seconds: int) -> bool: ...

    async def release_run_lock(self, obligation_key: str) -> None: ...


def _decode(value: bytes | str | None) -> str | None:
    if isinstance(value, bytes):
        return value.decode()
    return value


class ArqJobFacility:
    """JobFacility backed by arq deferred jobs."""

    def __init__(
        self,
        redis: ArqRedis,
        function_name: str = FETCH_TASK_NAME,
        queue_name: str = default_queue_name,
    ) -> None:
        """
        Initialize arq job facility.

        Args:
            redis: arq Redis pool.
            function_name: Worker function that runs an obligation.
            queue_name: arq queue the worker listens on.
        """
        self.redis = redis
        self.function_name = function_name
        self.queue_name = queue_name

    async def _enqueue(
        self, obligation_key: str, source_id: str, defer_until: datetime | None
    ) -> str:
        job_id = f"{obligation_key}:{uuid.uuid4().hex[:12]}"
        pointer = RedisKeys.obligation_job(obligation_key)
        # The pointer must name the job before a worker can pick it up
        await self.redis.set(pointer, job_id)
        try:
            job = await self.redis.enqueue_job(
                self.function_name,
                source_id,
                _job_id=job_id,
                _queue_name=self.queue_name,
                _defer_until=defer_until,
            )
        except Exception:
            await self._drop_pointer(pointer, job_id)
            raise
        if job is None:
            await self._drop_pointer(pointer, job_id)
            raise JobRejectedError(f"arq refused job {job_id}")
        return job_id

    async def _drop_pointer(self, pointer: str, job_id: str) -> None:
        if _decode(await self.redis.get(pointer)) == job_id:
            await self.redis.delete(pointer)

    async def schedule_at(self, when: datetime, obligation_key: str, source_id: str) -> str:
        """Register a one-shot job at `when` and return its job id."""
        return await self._enqueue(obligation_key, source_id, when)

    async def enqueue_now(self, obligation_key: str, source_id: str) -> str:
        """Register a job that runs as soon as a worker is free."""
        return await self._enqueue(obligation_key, source_id, None)

    async def cancel(self, obligation_key: str) -> bool:
        """
        Drop the job backing an obligation.

        A job that is already running is not interrupted; it only loses
        its registration.

        Returns:
            True if an obligation was registered.
        """
        pointer = RedisKeys.obligation_job(obligation_key)
        job_id = _decode(await self.redis.get(pointer))
        if not job_id:
            return False
        await self.redis.zrem(self.queue_name, job_id)
        await self.redis.delete(job_key_prefix + job_id, pointer)
        return True

    async def has_scheduled(self, obligation_key: str) -> bool:
        """Return whether the obligation has a job waiting or running."""
        job_id = _decode(await self.redis.get(RedisKeys.obligation_job(obligation_key)))
        if not job_id:
            return False
        return bool(await self.redis.exists(job_key_prefix + job_id))

    async def is_current(self, obligation_key: str, job_id: str) -> bool:
        """Return whether `job_id` is still the registered job of the obligation."""
        current = _decode(await self.redis.get(RedisKeys.obligation_job(obligation_key)))
        return current == job_id

    async def acquire_run_lock(self, obligation_key: str, ttl_seconds: int) -> bool:
        """Take the run lock; False if another fetch of the source is running."""
        acquired = await self.redis.set(
            RedisKeys.obligation_lock(obligation_key), "1", nx=True, ex=ttl_seconds
        )
        return bool(acquired)

    async def release_run_lock(self, obligation_key: str) -> None:
        """Release the run lock."""
        await self.redis.delete(RedisKeys.obligation_lock(obligation_key))
