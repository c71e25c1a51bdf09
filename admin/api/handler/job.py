"""잡 비즈니스 로직 핸들러"""

import logging

from admin.api.model.job import JobResponse
from admin.exception import (
    HandlerNotConfiguredError,
    JobNotFoundError,
    ScheduleNotFoundError,
)
from executor import Executor
from store import Job, Store
from store.exception import JobNotFoundError as StoreJobNotFoundError
from store.exception import ScheduleNotFoundError as StoreScheduleNotFoundError

logger = logging.getLogger(__name__)


class JobHandler:
    """잡 실행/조회 핸들러"""

    def __init__(self):
        self._store: Store | None = None
        self._executor: Executor | None = None

    def configure(self, store: Store, executor: Executor | None = None) -> None:
        self._store = store
        self._executor = executor

    @property
    def store(self) -> Store:
        if self._store is None:
            self._store = Store()
        return self._store

    @staticmethod
    def _to_response(job: Job) -> JobResponse:
        return JobResponse.model_validate(job, from_attributes=True)

    async def trigger(self, schedule_id: int) -> Job:
        """
        스케줄 1회 실행

        Raises:
            HandlerNotConfiguredError: Executor가 설정되지 않음
            ScheduleNotFoundError, JobFailedError, DatabaseError: Executor 예외 그대로
        """
        if self._executor is None:
            raise HandlerNotConfiguredError("job executor is not configured")

        logger.info(f"Triggering job for schedule {schedule_id}")
        return await self._executor.process_job(schedule_id)

    async def get_by_id(self, job_id: int) -> JobResponse:
        """ID로 잡 조회"""
        try:
            job = await self.store.find_job(job_id)
        except StoreJobNotFoundError:
            raise JobNotFoundError(job_id)
        return self._to_response(job)

    async def get_list_by_schedule(self, schedule_id: int, limit: int = 10) -> list[JobResponse]:
        """스케줄의 최근 잡 목록"""
        try:
            await self.store.find_schedule(schedule_id)
        except StoreScheduleNotFoundError:
            raise ScheduleNotFoundError(schedule_id)

        jobs = await self.store.list_jobs(schedule_id, limit)
        return [self._to_response(job) for job in jobs]
