"""
스케줄/크론탭 동기화 테스트

테스트 항목:
1. 정의 파일 -> Store 생성/수정/유지/삭제
2. 파일 없음/빈 파일은 스케줄 없음
3. 잘못된 정의는 Store를 바꾸지 않음
4. 크론탭 내용 생성 (활성 스케줄만)
5. 크론탭 설치 실패 시 기존 파일 유지

실행: python -m pytest test/sync_test.py -v
"""

import json
import logging

import pytest

from conftest import make_schedule
from store import JobNotFoundError
from sync import (
    CrontabInstallError,
    CrontabSync,
    ScheduleFileError,
    ScheduleSync,
    ScheduleValidationError,
    SyncConfig,
    read_schedules_file,
    render_crontab,
)

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def schedule_entry(name: str, **overrides) -> dict:
    entry = {
        "name": name,
        "app_name": "my-app",
        "schedule": "*/5 * * * *",
        "command": "uptime",
        "region": "iad",
        "config": {"image": "ubuntu:22.04"},
    }
    entry.update(overrides)
    return entry


def write_schedules(path, entries) -> None:
    path.write_text(json.dumps(entries), encoding="utf-8")


class TestReadSchedulesFile:
    """정의 파일 읽기 테스트"""

    def test_missing_and_empty_file(self, tmp_path):
        """없는 파일/빈 파일은 빈 목록"""
        assert read_schedules_file(tmp_path / "missing.json") == []

        empty = tmp_path / "empty.json"
        empty.write_text("  \n", encoding="utf-8")
        assert read_schedules_file(empty) == []
        logger.info("Missing/empty file test passed")

    def test_invalid_json(self, tmp_path):
        """JSON 파싱 실패/배열 아님"""
        path = tmp_path / "schedules.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ScheduleFileError):
            read_schedules_file(path)

        write_schedules(path, {"name": "x"})
        with pytest.raises(ScheduleFileError):
            read_schedules_file(path)
        logger.info("Invalid JSON test passed")

    def test_validation_errors(self, tmp_path):
        """잘못된 크론 표현식, 이름 중복"""
        path = tmp_path / "schedules.json"
        write_schedules(path, [schedule_entry("bad", schedule="every minute")])
        with pytest.raises(ScheduleValidationError) as exc_info:
            read_schedules_file(path)
        assert exc_info.value.name == "bad"

        write_schedules(path, [schedule_entry("dup"), schedule_entry("dup")])
        with pytest.raises(ScheduleValidationError, match="duplicate"):
            read_schedules_file(path)
        logger.info("Validation errors test passed")

    def test_ignores_id(self, tmp_path):
        """파일의 id는 무시"""
        path = tmp_path / "schedules.json"
        write_schedules(path, [schedule_entry("a", id=42, command_timeout=0)])

        [schedule] = read_schedules_file(path)
        assert schedule.id is None
        assert schedule.command_timeout == 30
        logger.info("Ignore id test passed")


class TestScheduleSync:
    """정의 파일 -> Store 동기화 테스트"""

    @pytest.mark.asyncio
    async def test_create_update_delete(self, store, tmp_path):
        """생성/수정/유지/삭제"""
        path = tmp_path / "schedules.json"
        sync = ScheduleSync(store, path)

        await store.create_schedule(make_schedule(name="keep"))
        await store.create_schedule(make_schedule(name="change"))
        stale = await store.create_schedule(make_schedule(name="stale"))
        stale_job = await store.create_job(stale.id)

        write_schedules(path, [
            schedule_entry("keep"),
            schedule_entry("change", command="df -h"),
            schedule_entry("new"),
        ])

        result = await sync.sync()

        assert result.created == ["new"]
        assert result.updated == ["change"]
        assert result.unchanged == ["keep"]
        assert result.deleted == ["stale"]

        schedules = {s.name: s for s in await store.list_schedules()}
        assert set(schedules) == {"keep", "change", "new"}
        assert schedules["change"].command == "df -h"
        with pytest.raises(JobNotFoundError):
            await store.find_job(stale_job.id)
        logger.info("Schedule sync create/update/delete test passed")

    @pytest.mark.asyncio
    async def test_sync_is_idempotent(self, store, tmp_path):
        """두 번째 동기화는 변경 없음"""
        path = tmp_path / "schedules.json"
        write_schedules(path, [schedule_entry("a"), schedule_entry("b")])
        sync = ScheduleSync(store, path)

        await sync.sync()
        result = await sync.sync()

        assert result.created == []
        assert result.updated == []
        assert result.deleted == []
        assert sorted(result.unchanged) == ["a", "b"]
        logger.info("Idempotent sync test passed")

    @pytest.mark.asyncio
    async def test_missing_file_deletes_all(self, store, schedule, tmp_path):
        """파일이 없으면 모든 스케줄 삭제"""
        result = await ScheduleSync(store, tmp_path / "missing.json").sync()

        assert result.deleted == ["uptime-check"]
        assert await store.list_schedules() == []
        logger.info("Missing file sync test passed")

    @pytest.mark.asyncio
    async def test_invalid_file_keeps_store(self, store, schedule, tmp_path):
        """잘못된 항목이 있으면 Store는 그대로"""
        path = tmp_path / "schedules.json"
        write_schedules(path, [schedule_entry("new"), schedule_entry("bad", schedule="nope")])

        with pytest.raises(ScheduleValidationError):
            await ScheduleSync(store, path).sync()

        assert [s.name for s in await store.list_schedules()] == ["uptime-check"]
        logger.info("Invalid file keeps store test passed")


class TestCrontabSync:
    """크론탭 동기화 테스트"""

    def test_render_crontab(self):
        """<cron> <executable> <id> 형식"""
        schedules = [
            make_schedule(name="a", id=1),
            make_schedule(name="b", id=7, schedule="0 3 * * *"),
        ]
        content = render_crontab(schedules, "/usr/local/bin/process-job")
        assert content == (
            "*/5 * * * * /usr/local/bin/process-job 1\n"
            "0 3 * * * /usr/local/bin/process-job 7\n"
        )
        assert render_crontab([], "/usr/local/bin/process-job") == ""
        logger.info("Render crontab test passed")

    @pytest.mark.asyncio
    async def test_sync_installs_enabled_schedules(self, store, schedule, tmp_path):
        """활성 스케줄만 설치하고 보관 파일 교체"""
        await store.create_schedule(make_schedule(name="off", enabled=False))
        installed = {}

        async def runner(path: str) -> tuple[int, str]:
            with open(path, encoding="utf-8") as f:
                installed["content"] = f.read()
            return 0, ""

        config = SyncConfig(crontab_path=str(tmp_path / "crontab"), executable="/bin/process-job")
        synced = await CrontabSync(store, config, runner).sync()

        expected = f"*/5 * * * * /bin/process-job {schedule.id}\n"
        assert synced == 1
        assert installed["content"] == expected
        assert (tmp_path / "crontab").read_text(encoding="utf-8") == expected
        assert not any(p.name.startswith("crontab-") for p in tmp_path.iterdir())
        logger.info("Crontab sync test passed")

    @pytest.mark.asyncio
    async def test_install_failure_keeps_previous(self, store, schedule, tmp_path):
        """설치 실패 시 기존 크론탭 파일 유지, 임시 파일 삭제"""
        crontab_path = tmp_path / "crontab"
        crontab_path.write_text("previous\n", encoding="utf-8")

        async def runner(path: str) -> tuple[int, str]:
            return 1, "bad minute\n"

        config = SyncConfig(crontab_path=str(crontab_path))
        with pytest.raises(CrontabInstallError) as exc_info:
            await CrontabSync(store, config, runner).sync()

        assert exc_info.value.returncode == 1
        assert "bad minute" in exc_info.value.message
        assert crontab_path.read_text(encoding="utf-8") == "previous\n"
        assert not any(p.name.startswith("crontab-") for p in tmp_path.iterdir())
        logger.info("Crontab install failure test passed")
