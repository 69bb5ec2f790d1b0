"""Tests for util.logger: job tagging of log records."""

import asyncio
import logging

import pytest

from conftest import lines
from util.logger import NO_JOB, JobContextFilter, bind_job


def make_record(**extra):
    record = logging.LogRecord("service.job_service", logging.INFO, __file__, 1, "msg", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def tagged(caplog):
    caplog.set_level(logging.INFO)
    caplog.handler.addFilter(JobContextFilter())
    return caplog


class TestJobContextFilter:
    def test_unbound_records_get_placeholder(self):
        record = make_record()
        assert JobContextFilter().filter(record) is True
        assert record.job_id == NO_JOB

    def test_bound_job_tags_record_and_resets_after(self):
        with bind_job("2025-01-abc"):
            inside = make_record()
            JobContextFilter().filter(inside)
        after = make_record()
        JobContextFilter().filter(after)
        assert inside.job_id == "2025-01-abc"
        assert after.job_id == NO_JOB

    def test_explicit_job_id_is_kept(self):
        with bind_job("2025-01-abc"):
            record = make_record(job_id="2025-01-other")
            JobContextFilter().filter(record)
        assert record.job_id == "2025-01-other"

    def test_concurrent_tasks_keep_their_own_job(self):
        seen = {}

        async def work(job_id):
            with bind_job(job_id):
                await asyncio.sleep(0)
                record = make_record()
                JobContextFilter().filter(record)
                seen[job_id] = record.job_id

        async def main():
            await asyncio.gather(work("2025-01-aaa"), work("2025-01-bbb"))

        asyncio.run(main())
        assert seen == {"2025-01-aaa": "2025-01-aaa", "2025-01-bbb": "2025-01-bbb"}


class TestServiceTagging:
    def test_partitioner_records_carry_submitted_job(self, tagged, service):
        job_id = asyncio.run(service.submit(_body(lines(5))))
        split = [r for r in tagged.records if r.getMessage().startswith("partition.ok")]
        assert [r.job_id for r in split] == [job_id]

    def test_dispatch_failure_is_tagged(self, tagged, service, cluster):
        cluster.fail_create = RuntimeError("backend unavailable")
        with pytest.raises(RuntimeError):
            asyncio.run(service.submit(_body(lines(5))))
        failed = [r for r in tagged.records if r.getMessage().startswith("submit.dispatch.error")]
        assert len(failed) == 1
        assert failed[0].job_id != NO_JOB
        assert failed[0].job_id == failed[0].args[0]


async def _body(data: bytes):
    yield data
