"""
Store 테스트

테스트 항목:
1. 스케줄 생성/조회/수정/삭제
2. 이름 중복, 잘못된 정의 차단
3. 잡 생성 및 상태 전이
4. expected_status 조건부 종료
5. 잡 목록 조회 (최신순, limit)

실행: python -m pytest test/store_test.py -v
"""

import logging
import re

import pytest
from pydantic import ValidationError

from conftest import make_schedule
from store import (
    DuplicateScheduleError,
    JobNotFoundError,
    JobStatus,
    ScheduleNotFoundError,
)

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

QUERY_NAME = re.compile(r"^-- name: (\w+)(\([^)]*\))?[\^!#]?$")


class TestSchedule:
    """스케줄 CRUD 테스트"""

    @pytest.mark.asyncio
    async def test_create_and_find(self, store):
        """스케줄 생성 후 ID/이름으로 조회"""
        created = await store.create_schedule(make_schedule(config={"image": "ubuntu:22.04", "guest": {"cpus": 2}}))
        assert created.id is not None
        assert created.created_at is not None

        found = await store.find_schedule(created.id)
        assert found.name == "uptime-check"
        assert found.config.image == "ubuntu:22.04"
        assert found.config.guest.cpus == 2
        assert found.enabled is True

        by_name = await store.find_schedule_by_name("uptime-check")
        assert by_name.id == created.id
        logger.info("Schedule create/find test passed")

    @pytest.mark.asyncio
    async def test_default_command_timeout(self, store):
        """command_timeout 0/미지정 시 30초"""
        created = await store.create_schedule(make_schedule(command_timeout=0))
        assert created.command_timeout == 30
        logger.info("Default command timeout test passed")

    @pytest.mark.asyncio
    async def test_duplicate_name(self, store, schedule):
        """같은 이름의 스케줄 생성 시 DuplicateScheduleError"""
        with pytest.raises(DuplicateScheduleError):
            await store.create_schedule(make_schedule())
        logger.info("Duplicate schedule test passed")

    def test_invalid_definition(self):
        """잘못된 크론 표현식/음수 타임아웃 차단"""
        with pytest.raises(ValidationError):
            make_schedule(schedule="not a cron")
        with pytest.raises(ValidationError):
            make_schedule(command_timeout=-5)
        with pytest.raises(ValidationError):
            make_schedule(config={"guest": {"cpus": 1}})
        with pytest.raises(ValidationError):
            make_schedule(command="echo it's done")
        logger.info("Invalid schedule definition test passed")

    @pytest.mark.asyncio
    async def test_update_by_name(self, store, schedule):
        """이름 기준 전체 덮어쓰기"""
        updated = await store.update_schedule(
            make_schedule(schedule="0 * * * *", command="df -h", enabled=False)
        )
        assert updated.id == schedule.id
        assert updated.schedule == "0 * * * *"
        assert updated.command == "df -h"
        assert updated.enabled is False

        with pytest.raises(ScheduleNotFoundError):
            await store.update_schedule(make_schedule(name="missing"))
        logger.info("Schedule update test passed")

    @pytest.mark.asyncio
    async def test_list_enabled(self, store, schedule):
        """활성 스케줄만 조회"""
        await store.create_schedule(make_schedule(name="disabled", enabled=False))

        all_schedules = await store.list_schedules()
        enabled = await store.list_enabled_schedules()

        assert {s.name for s in all_schedules} == {"uptime-check", "disabled"}
        assert [s.name for s in enabled] == ["uptime-check"]
        logger.info("List enabled schedules test passed")

    @pytest.mark.asyncio
    async def test_delete_cascades_jobs(self, store, schedule):
        """스케줄 삭제 시 잡 이력도 삭제"""
        job = await store.create_job(schedule.id)

        await store.delete_schedule(schedule.id)

        with pytest.raises(ScheduleNotFoundError):
            await store.find_schedule(schedule.id)
        with pytest.raises(JobNotFoundError):
            await store.find_job(job.id)
        with pytest.raises(ScheduleNotFoundError):
            await store.delete_schedule(schedule.id)
        logger.info("Schedule delete cascade test passed")


class TestJob:
    """잡 상태 전이 테스트"""

    @pytest.mark.asyncio
    async def test_create_job_pending(self, store, schedule):
        """새 잡은 pending, machine_id 없음"""
        job = await store.create_job(schedule.id)
        assert job.status is JobStatus.PENDING
        assert job.machine_id is None
        assert job.finished_at is None
        logger.info("Create job test passed")

    @pytest.mark.asyncio
    async def test_running_then_complete(self, store, schedule):
        """machine_id 기록 -> running -> completed"""
        job = await store.create_job(schedule.id)
        await store.update_job_machine(job.id, "m-1")
        await store.update_job_status(job.id, JobStatus.RUNNING)

        assert await store.complete_job(job.id, 0, "hello\n", expected_status=JobStatus.RUNNING)

        job = await store.find_job(job.id)
        assert job.status is JobStatus.COMPLETED
        assert job.exit_code == 0
        assert job.stdout == "hello\n"
        assert job.finished_at is not None

        found = await store.find_job_by_machine_id("m-1")
        assert found.id == job.id
        assert await store.find_job_by_machine_id("m-unknown") is None
        logger.info("Running/complete test passed")

    @pytest.mark.asyncio
    async def test_conditional_fail(self, store, schedule):
        """expected_status가 다르면 갱신하지 않음"""
        job = await store.create_job(schedule.id)
        await store.update_job_status(job.id, JobStatus.RUNNING)
        assert await store.complete_job(job.id, 0, "", expected_status=JobStatus.RUNNING)

        updated = await store.fail_job(job.id, -1, "too late", expected_status=JobStatus.RUNNING)
        assert updated is False

        job = await store.find_job(job.id)
        assert job.status is JobStatus.COMPLETED
        assert job.stderr is None
        logger.info("Conditional fail test passed")

    @pytest.mark.asyncio
    async def test_fail_records_message(self, store, schedule):
        """fail_job은 메시지를 stderr에 기록"""
        job = await store.create_job(schedule.id)
        assert await store.fail_job(job.id, 1, "failed to provision machine: boom")

        job = await store.find_job(job.id)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == 1
        assert job.stderr == "failed to provision machine: boom"
        logger.info("Fail job test passed")

    @pytest.mark.asyncio
    async def test_update_missing_job(self, store):
        """없는 잡 갱신 시 JobNotFoundError"""
        with pytest.raises(JobNotFoundError):
            await store.update_job_status(999, JobStatus.RUNNING)
        with pytest.raises(JobNotFoundError):
            await store.update_job_machine(999, "m-1")
        logger.info("Missing job update test passed")

    @pytest.mark.asyncio
    async def test_list_jobs_newest_first(self, store, schedule):
        """스케줄 잡 목록은 최신순, limit 적용"""
        ids = [(await store.create_job(schedule.id)).id for _ in range(5)]

        jobs = await store.list_jobs(schedule.id, limit=3)
        assert [j.id for j in jobs] == list(reversed(ids))[:3]
        logger.info("List jobs test passed")

    @pytest.mark.asyncio
    async def test_list_by_status(self, store, schedule):
        """상태별/정합성 복구 대상 잡 조회"""
        pending = await store.create_job(schedule.id)
        running = await store.create_job(schedule.id)
        done = await store.create_job(schedule.id)
        await store.update_job_status(running.id, JobStatus.RUNNING)
        await store.complete_job(done.id, 0, "")

        assert [j.id for j in await store.list_jobs_by_status(JobStatus.RUNNING)] == [running.id]
        reconcilable = {j.id for j in await store.list_reconcilable_jobs()}
        assert reconcilable == {pending.id, running.id}
        logger.info("List by status test passed")


class TestQueries:
    """SQL 파일 테스트"""

    def test_queries_declare_parameters(self):
        """모든 쿼리가 파라미터 목록을 선언 (aiosql mandatory_parameters)"""
        from store.main import SQL_PATH

        names = [
            QUERY_NAME.match(line)
            for line in SQL_PATH.read_text(encoding="utf-8").splitlines()
            if line.startswith("-- name:")
        ]

        assert names
        assert all(m is not None and m.group(2) is not None for m in names)
        logger.info("Query parameter declaration test passed")

    @pytest.mark.asyncio
    async def test_not_found_inside_transaction(self, store):
        """트랜잭션 안에서 발생한 NotFoundError는 그대로 전달"""
        import database.sqlite3  # noqa: F401 (database.sqlite3 속성이 등록된 상태에서 검증)

        with pytest.raises(ScheduleNotFoundError):
            await store.find_schedule(12345)
        with pytest.raises(JobNotFoundError):
            await store.find_job(12345)
        logger.info("NotFound propagation test passed")
