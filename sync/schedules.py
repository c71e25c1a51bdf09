"""
스케줄 동기화

선언적 스케줄 정의 파일(JSON 배열)을 Store와 이름 기준으로 맞춥니다.

    - 파일에만 있는 스케줄: 생성
    - 정의가 바뀐 스케줄: 전체 덮어쓰기
    - Store에만 있는 스케줄: 삭제 (잡 이력 포함)

파일 전체를 먼저 검증한 뒤 하나의 트랜잭션으로 반영하므로
잘못된 항목이 있으면 Store는 바뀌지 않습니다.
"""

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from database import transactional
from store import Schedule, Store
from sync.exception import ScheduleFileError, ScheduleValidationError
from sync.model import SyncResult

logger = logging.getLogger(__name__)


def read_schedules_file(path: str | Path) -> list[Schedule]:
    """
    스케줄 정의 파일 읽기

    파일이 없거나 비어 있으면 스케줄이 없는 것으로 봅니다.

    Raises:
        ScheduleFileError: JSON 파싱 실패 또는 배열이 아닌 경우
        ScheduleValidationError: 항목 검증 실패 또는 이름 중복
    """
    path = Path(path)
    if not path.exists():
        logger.info(f"Schedules file not found, treating as empty: {path}")
        return []

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ScheduleFileError(str(path), str(e)) from e

    if not content.strip():
        return []

    try:
        entries = json.loads(content)
    except json.JSONDecodeError as e:
        raise ScheduleFileError(str(path), f"invalid JSON: {e}") from e

    if not isinstance(entries, list):
        raise ScheduleFileError(str(path), "expected a JSON array of schedules")

    schedules: list[Schedule] = []
    seen: set[str] = set()
    for index, entry in enumerate(entries):
        name = entry.get("name") if isinstance(entry, dict) else None
        label = name or f"#{index}"
        try:
            schedule = Schedule.model_validate(entry)
        except ValidationError as e:
            raise ScheduleValidationError(label, _format_errors(e)) from e

        if schedule.name in seen:
            raise ScheduleValidationError(label, "duplicate schedule name")
        seen.add(schedule.name)
        schedules.append(schedule.model_copy(update={"id": None}))

    return schedules


def _format_errors(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc']) or 'schedule'}: {e['msg']}"
        for e in error.errors()
    )


class ScheduleSync:
    """스케줄 정의 파일 -> Store 동기화"""

    def __init__(self, store: Store, schedules_file: str | Path):
        self._store = store
        self._schedules_file = Path(schedules_file)

    async def sync(self, path: str | Path | None = None) -> SyncResult:
        """
        스케줄 동기화 실행

        Args:
            path: 정의 파일 경로 (None이면 설정값)

        Returns:
            SyncResult: 생성/수정/유지/삭제된 스케줄 이름
        """
        schedules = read_schedules_file(path or self._schedules_file)
        result = await self._apply(schedules)

        logger.info(
            f"Synced schedules: created={len(result.created)}, updated={len(result.updated)}, "
            f"unchanged={len(result.unchanged)}, deleted={len(result.deleted)}"
        )
        return result

    @transactional
    async def _apply(self, schedules: list[Schedule]) -> SyncResult:
        result = SyncResult()
        existing = {s.name: s for s in await self._store.list_schedules()}

        for schedule in schedules:
            record = existing.get(schedule.name)
            if record is None:
                await self._store.create_schedule(schedule)
                logger.info(f"Created schedule {schedule.name}")
                result.created.append(schedule.name)
            elif record.same_definition(schedule):
                result.unchanged.append(schedule.name)
            else:
                await self._store.update_schedule(schedule)
                logger.info(f"Updated schedule {schedule.name}")
                result.updated.append(schedule.name)

        present = {s.name for s in schedules}
        for name, record in existing.items():
            if name not in present:
                await self._store.delete_schedule(record.id)
                logger.info(f"Deleted schedule {name}")
                result.deleted.append(name)

        return result
