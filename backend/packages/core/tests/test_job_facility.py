"""Tests for the arq job facility."""

from datetime import datetime, timezone

import pytest
from arq.constants import job_key_prefix

from feedloom_core.redis_keys import RedisKeys
from feedloom_core.services.job_facility import ArqJobFacility, JobRejectedError

KEY = RedisKeys.fetch_obligation("s1")


class TestArqJobFacility:
    """Test ArqJobFacility against the mock arq redis."""

    @pytest.mark.asyncio
    async def test_schedule_at_records_pointer(self, facility, mock_redis):
        when = datetime(2025, 10, 9, 12, 0, tzinfo=timezone.utc)

        job_id = await facility.schedule_at(when, KEY, "s1")

        assert job_id.startswith(f"{KEY}:")
        assert await facility.is_current(KEY, job_id)
        assert await facility.has_scheduled(KEY)
        _, args, kwargs = mock_redis.enqueued_jobs[0]
        assert args == ("s1",)
        assert kwargs["_defer_until"] == when

    @pytest.mark.asyncio
    async def test_each_registration_gets_new_job_id(self, facility):
        first = await facility.enqueue_now(KEY, "s1")
        second = await facility.enqueue_now(KEY, "s1")

        assert first != second
        assert not await facility.is_current(KEY, first)
        assert await facility.is_current(KEY, second)

    @pytest.mark.asyncio
    async def test_cancel_removes_job(self, facility, mock_redis):
        job_id = await facility.enqueue_now(KEY, "s1")

        assert await facility.cancel(KEY) is True

        assert mock_redis.queued() == set()
        assert not mock_redis.has_key(job_key_prefix + job_id)
        assert not await facility.has_scheduled(KEY)
        assert await facility.cancel(KEY) is False

    @pytest.mark.asyncio
    async def test_finished_job_is_not_scheduled(self, facility, mock_redis):
        job_id = await facility.enqueue_now(KEY, "s1")
        mock_redis.finish(job_id)

        assert not await facility.has_scheduled(KEY)

    @pytest.mark.asyncio
    async def test_run_lock_is_exclusive(self, facility, mock_redis):
        assert await facility.acquire_run_lock(KEY, 300) is True
        assert await facility.acquire_run_lock(KEY, 300) is False
        assert mock_redis._ttl[RedisKeys.obligation_lock(KEY)] == 300

        await facility.release_run_lock(KEY)

        assert await facility.acquire_run_lock(KEY, 300) is True

    @pytest.mark.asyncio
    async def test_rejected_job_raises(self, mock_redis):
        async def refuse(*args, **kwargs):
            return None

        mock_redis.enqueue_job = refuse
        facility = ArqJobFacility(mock_redis)

        with pytest.raises(JobRejectedError):
            await facility.enqueue_now(KEY, "s1")

    @pytest.mark.asyncio
    async def test_custom_queue(self, mock_redis):
        facility = ArqJobFacility(mock_redis, queue_name="feeds")

        job_id = await facility.enqueue_now(KEY, "s1")

        assert mock_redis.queued("feeds") == {job_id}
        await facility.cancel(KEY)
        assert mock_redis.queued("feeds") == set()

    @pytest.mark.asyncio
    async def test_pointer_names_job_before_worker_can_run_it(self, facility, mock_redis):
        seen = []
        enqueue = mock_redis.enqueue_job

        async def observing_enqueue(*args, **kwargs):
            seen.append(await facility.is_current(KEY, kwargs["_job_id"]))
            return await enqueue(*args, **kwargs)

        mock_redis.enqueue_job = observing_enqueue

        await facility.enqueue_now(KEY, "s1")

        assert seen == [True]

    @pytest.mark.asyncio
    async def test_rejected_job_leaves_no_pointer(self, mock_redis):
        async def refuse(*args, **kwargs):
            return None

        mock_redis.enqueue_job = refuse
        facility = ArqJobFacility(mock_redis)

        with pytest.raises(JobRejectedError):
            await facility.enqueue_now(KEY, "s1")

        assert not mock_redis.has_key(RedisKeys.obligation_job(KEY))
