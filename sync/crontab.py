"""
크론탭 동기화

활성화된 스케줄로 크론탭을 다시 만들고 설치합니다.

    <cron-expression> <executable> <schedule-id>

잘못된 항목 하나가 정상 동작하던 크론탭을 덮어쓰지 않도록
같은 디렉토리의 임시 파일로 먼저 설치해 보고, 성공한 경우에만 보관 파일을 교체합니다.
"""

import asyncio
import logging
import os
import tempfile
from pathlib import Path
from typing import Awaitable, Callable

from store import Schedule, Store
from sync.exception import CrontabInstallError
from sync.model import SyncConfig

logger = logging.getLogger(__name__)

# 임시 크론탭 경로를 받아 설치하고 (종료 코드, 출력)을 반환
CrontabRunner = Callable[[str], Awaitable[tuple[int, str]]]


async def run_crontab(path: str, command: str = "crontab") -> tuple[int, str]:
    """crontab <path> 실행"""
    try:
        process = await asyncio.create_subprocess_exec(
            command,
            path,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except OSError as e:
        return 127, str(e)

    output, _ = await process.communicate()
    return process.returncode, output.decode("utf-8", errors="replace")


def render_crontab(schedules: list[Schedule], executable: str) -> str:
    """스케줄 목록을 크론탭 내용으로 변환"""
    return "".join(
        f"{schedule.schedule} {executable} {schedule.id}\n" for schedule in schedules
    )


class CrontabSync:
    """Store의 활성 스케줄 -> 크론탭 동기화"""

    def __init__(
        self,
        store: Store,
        config: SyncConfig | None = None,
        runner: CrontabRunner | None = None,
    ):
        self._store = store
        self._config = config or SyncConfig()
        self._runner = runner or (lambda path: run_crontab(path, self._config.crontab_command))

    async def sync(self) -> int:
        """
        크론탭 재생성 및 설치

        Returns:
            int: 크론탭에 기록된 스케줄 수

        Raises:
            CrontabInstallError: 설치 실패 (보관 파일은 바뀌지 않음)
        """
        schedules = await self._store.list_enabled_schedules()
        content = render_crontab(schedules, self._config.executable)

        crontab_path = Path(self._config.crontab_path)
        crontab_path.parent.mkdir(parents=True, exist_ok=True)

        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=crontab_path.parent,
            prefix="crontab-",
            delete=False,
        ) as f:
            temp_path = f.name
            f.write(content)
            f.flush()
            os.fsync(f.fileno())

        try:
            returncode, output = await self._runner(temp_path)
            if returncode != 0:
                logger.error(f"Crontab install failed (exit status {returncode}): {output.strip()}")
                raise CrontabInstallError(returncode, output)

            try:
                os.replace(temp_path, crontab_path)
            except OSError as e:
                logger.warning(f"Failed to replace {crontab_path} with generated crontab: {e}")
        finally:
            Path(temp_path).unlink(missing_ok=True)

        logger.info(f"Synced {len(schedules)} schedule(s) to crontab")
        return len(schedules)
