"""
Store: 스케줄/잡 영속화

모든 연산은 각자 짧은 트랜잭션 하나로 실행됩니다 (@transactional).
NotFoundError 계열 외의 실패는 DatabaseError로 전달되며 호출 측에서 재시도하지 않습니다.
"""

import logging
from pathlib import Path

import aiosql
import aiosqlite

from database import get_connection, transactional, transactional_readonly
from store.exception import (
    DuplicateScheduleError,
    JobNotFoundError,
    ScheduleNotFoundError,
)
from store.model import Job, JobStatus, Schedule

logger = logging.getLogger(__name__)

SQL_PATH = Path(__file__).parent / "sql" / "store.sql"


class Store:
    """스케줄/잡 저장소"""

    def __init__(self):
        self._queries = aiosql.from_path(str(SQL_PATH), "aiosqlite")

    # ============================================
    # Schedules
    # ============================================

    @transactional
    async def create_schedule(self, schedule: Schedule) -> Schedule:
        """
        스케줄 생성

        Raises:
            DuplicateScheduleError: 같은 이름의 스케줄이 이미 있는 경우
        """
        ctx = get_connection()
        try:
            row = await self._queries.create_schedule(ctx.connection, **schedule.to_params())
        except aiosqlite.IntegrityError as e:
            raise DuplicateScheduleError(schedule.name) from e
        logger.debug(f"Created schedule: id={row['id']}, name={schedule.name}")
        return Schedule.from_row(row)

    @transactional
    async def update_schedule(self, schedule: Schedule) -> Schedule:
        """
        이름 기준으로 스케줄 전체 덮어쓰기

        Raises:
            ScheduleNotFoundError: 해당 이름의 스케줄이 없는 경우
        """
        ctx = get_connection()
        row = await self._queries.update_schedule_by_name(ctx.connection, **schedule.to_params())
        if row is None:
            raise ScheduleNotFoundError(name=schedule.name)
        logger.debug(f"Updated schedule: id={row['id']}, name={schedule.name}")
        return Schedule.from_row(row)

    @transactional
    async def delete_schedule(self, schedule_id: int) -> None:
        """
        스케줄 삭제 (해당 스케줄의 잡 이력도 함께 삭제)

        Raises:
            ScheduleNotFoundError: 스케줄이 없는 경우
        """
        ctx = get_connection()
        deleted_jobs = await self._queries.delete_jobs_by_schedule(
            ctx.connection, schedule_id=schedule_id
        )
        affected_rows = await self._queries.delete_schedule(ctx.connection, schedule_id=schedule_id)
        if affected_rows == 0:
            raise ScheduleNotFoundError(schedule_id)
        logger.debug(f"Deleted schedule: id={schedule_id}, jobs={deleted_jobs}")

    @transactional
    async def delete_schedule_by_name(self, name: str) -> None:
        """이름으로 스케줄 삭제"""
        schedule = await self.find_schedule_by_name(name)
        await self.delete_schedule(schedule.id)

    @transactional_readonly
    async def find_schedule(self, schedule_id: int) -> Schedule:
        ctx = get_connection()
        row = await self._queries.get_schedule_by_id(ctx.connection, schedule_id=schedule_id)
        if row is None:
            raise ScheduleNotFoundError(schedule_id)
        return Schedule.from_row(row)

    @transactional_readonly
    async def find_schedule_by_name(self, name: str) -> Schedule:
        ctx = get_connection()
        row = await self._queries.get_schedule_by_name(ctx.connection, name=name)
        if row is None:
            raise ScheduleNotFoundError(name=name)
        return Schedule.from_row(row)

    @transactional_readonly
    async def list_schedules(self) -> list[Schedule]:
        ctx = get_connection()
        rows = await self._queries.get_schedules(ctx.connection)
        return [Schedule.from_row(row) for row in rows]

    @transactional_readonly
    async def list_enabled_schedules(self) -> list[Schedule]:
        ctx = get_connection()
        rows = await self._queries.get_enabled_schedules(ctx.connection)
        return [Schedule.from_row(row) for row in rows]

    # ============================================
    # Jobs
    # ============================================

    @transactional
    async def create_job(self, schedule_id: int) -> Job:
        """pending 상태의 잡 생성"""
        ctx = get_connection()
        row = await self._queries.create_job(ctx.connection, schedule_id=schedule_id)
        return Job.from_row(row)

    @transactional
    async def update_job_status(self, job_id: int, status: JobStatus) -> None:
        ctx = get_connection()
        affected_rows = await self._queries.update_job_status(
            ctx.connection, job_id=job_id, status=JobStatus(status).value
        )
        if affected_rows == 0:
            raise JobNotFoundError(job_id)

    @transactional
    async def update_job_machine(self, job_id: int, machine_id: str) -> None:
        ctx = get_connection()
        affected_rows = await self._queries.update_job_machine(
            ctx.connection, job_id=job_id, machine_id=machine_id
        )
        if affected_rows == 0:
            raise JobNotFoundError(job_id)

    @transactional
    async def fail_job(
        self,
        job_id: int,
        exit_code: int,
        message: str,
        expected_status: JobStatus | None = None,
    ) -> bool:
        """
        잡을 failed로 종료 (메시지는 stderr에 기록)

        Args:
            expected_status: 지정하면 해당 상태인 경우에만 갱신

        Returns:
            bool: 갱신 여부 (expected_status 불일치면 False)
        """
        ctx = get_connection()
        affected_rows = await self._queries.fail_job(
            ctx.connection,
            job_id=job_id,
            exit_code=exit_code,
            stderr=message,
            expected_status=expected_status.value if expected_status else None,
        )
        return affected_rows > 0

    @transactional
    async def complete_job(
        self,
        job_id: int,
        exit_code: int,
        stdout: str,
        expected_status: JobStatus | None = None,
    ) -> bool:
        """
        잡을 completed로 종료

        Returns:
            bool: 갱신 여부 (expected_status 불일치면 False)
        """
        ctx = get_connection()
        affected_rows = await self._queries.complete_job(
            ctx.connection,
            job_id=job_id,
            exit_code=exit_code,
            stdout=stdout,
            expected_status=expected_status.value if expected_status else None,
        )
        return affected_rows > 0

    @transactional_readonly
    async def find_job(self, job_id: int) -> Job:
        ctx = get_connection()
        row = await self._queries.get_job_by_id(ctx.connection, job_id=job_id)
        if row is None:
            raise JobNotFoundError(job_id)
        return Job.from_row(row)

    @transactional_readonly
    async def find_job_by_machine_id(self, machine_id: str) -> Job | None:
        """머신 ID로 잡 조회 (없으면 None)"""
        ctx = get_connection()
        row = await self._queries.get_job_by_machine_id(ctx.connection, machine_id=machine_id)
        return Job.from_row(row) if row else None

    @transactional_readonly
    async def list_jobs(self, schedule_id: int, limit: int = 10) -> list[Job]:
        """스케줄의 최근 잡 목록 (최신순)"""
        ctx = get_connection()
        rows = await self._queries.get_jobs_by_schedule(
            ctx.connection, schedule_id=schedule_id, limit=limit
        )
        return [Job.from_row(row) for row in rows]

    @transactional_readonly
    async def list_jobs_by_status(self, status: JobStatus) -> list[Job]:
        ctx = get_connection()
        rows = await self._queries.get_jobs_by_status(ctx.connection, status=JobStatus(status).value)
        return [Job.from_row(row) for row in rows]

    @transactional_readonly
    async def list_reconcilable_jobs(self) -> list[Job]:
        """pending/running 잡 목록"""
        ctx = get_connection()
        rows = await self._queries.get_reconcilable_jobs(ctx.connection)
        return [Job.from_row(row) for row in rows]
