"""스케줄 비즈니스 로직 핸들러"""

import logging

from pydantic import ValidationError

from admin.api.model.schedule import ScheduleCreateRequest, ScheduleResponse
from admin.exception import (
    ScheduleDuplicateError,
    ScheduleNotFoundError,
    ScheduleValidationError,
)
from store import Schedule, Store
from store.exception import DuplicateScheduleError, ScheduleNotFoundError as StoreScheduleNotFoundError
from sync import CrontabSync

logger = logging.getLogger(__name__)


class ScheduleHandler:
    """스케줄 관리 핸들러"""

    def __init__(self):
        self._store: Store | None = None
        self._crontab_sync: CrontabSync | None = None

    def configure(self, store: Store, crontab_sync: CrontabSync | None = None) -> None:
        self._store = store
        self._crontab_sync = crontab_sync

    @property
    def store(self) -> Store:
        if self._store is None:
            self._store = Store()
        return self._store

    @property
    def crontab_sync(self) -> CrontabSync:
        if self._crontab_sync is None:
            self._crontab_sync = CrontabSync(self.store)
        return self._crontab_sync

    @staticmethod
    def _to_response(schedule: Schedule) -> ScheduleResponse:
        return ScheduleResponse(
            id=schedule.id,
            name=schedule.name,
            app_name=schedule.app_name,
            schedule=schedule.schedule,
            command=schedule.command,
            command_timeout=schedule.command_timeout,
            region=schedule.region,
            enabled=schedule.enabled,
            config=schedule.config.model_dump(exclude_none=True),
            created_at=schedule.created_at,
            updated_at=schedule.updated_at,
        )

    async def get_list(self) -> list[ScheduleResponse]:
        """스케줄 목록 조회"""
        schedules = await self.store.list_schedules()
        return [self._to_response(s) for s in schedules]

    async def get_by_id(self, schedule_id: int) -> ScheduleResponse:
        """ID로 스케줄 조회"""
        try:
            schedule = await self.store.find_schedule(schedule_id)
        except StoreScheduleNotFoundError:
            raise ScheduleNotFoundError(schedule_id)
        return self._to_response(schedule)

    async def create(self, request: ScheduleCreateRequest) -> ScheduleResponse:
        """스케줄 생성"""
        try:
            schedule = Schedule.model_validate(request.model_dump())
        except ValidationError as e:
            messages = "; ".join(err["msg"] for err in e.errors())
            raise ScheduleValidationError(messages)

        try:
            created = await self.store.create_schedule(schedule)
        except DuplicateScheduleError:
            raise ScheduleDuplicateError(schedule.name)

        logger.info(f"Created schedule: id={created.id}, name={created.name}")
        return self._to_response(created)

    async def delete(self, schedule_id: int) -> None:
        """스케줄 삭제 (잡 이력 포함)"""
        try:
            await self.store.delete_schedule(schedule_id)
        except StoreScheduleNotFoundError:
            raise ScheduleNotFoundError(schedule_id)
        logger.info(f"Deleted schedule: id={schedule_id}")

    async def sync_crontab(self) -> int:
        """활성 스케줄로 크론탭 재생성"""
        return await self.crontab_sync.sync()
