"""
Monitor: running 잡 점검 모듈

주기적으로 running 상태의 잡을 조회하여 머신 상태로 결과를 확정합니다.

    - 머신 없음 (보존 기간 경과)   -> failed(-1)
    - 머신 destroyed + exit 이벤트 -> exit code 0이면 completed, 아니면 failed
    - 머신 stopped + exit 이벤트   -> 결과 기록 후 머신 파기
    - 그 외 command_timeout 초과   -> 머신 파기 후 failed(-1)

한 주기의 점검이 모두 끝나야 다음 주기로 넘어가므로 주기가 겹치지 않습니다.

실행 방법:
    python main.py monitor
    cronmgr monitor
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone

from common.logging import JobLogger
from machine import (
    BaseMachineClient,
    FlyMachineClient,
    MachineClientFactory,
    MachineError,
    MachineHandle,
    MachineNotFoundError,
    MachineState,
)
from monitor.model import MonitorConfig
from store import Job, JobStatus, Schedule, Store

logger = logging.getLogger(__name__)

MACHINE_GONE_MESSAGE = "machine destroyed before we could interpret the results"
TIMEOUT_MESSAGE = "exceeded command timeout"


def run_started_at(job: Job, handle: MachineHandle) -> datetime:
    """실행 시작 시각 (머신 start 이벤트, 없으면 잡 updated_at)"""
    start_event = handle.find_event("start")
    if start_event is not None:
        return start_event.time
    return job.updated_at


def has_exceeded_timeout(schedule: Schedule, job: Job, handle: MachineHandle, now: datetime | None = None) -> bool:
    """command_timeout 초과 여부"""
    now = now or datetime.now(timezone.utc)
    elapsed = now - run_started_at(job, handle)
    return elapsed > timedelta(seconds=schedule.command_timeout)


class Monitor:
    """
    running 잡 모니터

    점검은 max_concurrency로 제한된 태스크로 병렬 실행하며,
    개별 잡의 오류는 로그만 남기고 다른 잡 점검에 영향을 주지 않습니다.
    running 잡 목록 조회 실패는 치명적 오류로 start() 밖으로 전파됩니다.
    """

    def __init__(
        self,
        store: Store,
        client_factory: MachineClientFactory | None = None,
        config: MonitorConfig | None = None,
    ):
        self._store = store
        self._client_factory = client_factory or FlyMachineClient.factory()
        self._config = config or MonitorConfig()
        self._running = False
        self._stop_event: asyncio.Event | None = None
        self._semaphore = asyncio.Semaphore(self._config.max_concurrency)

    async def start(self) -> None:
        """Monitor 메인 루프 시작"""
        if self._running:
            logger.warning("Monitor is already running")
            return

        self._running = True
        self._stop_event = asyncio.Event()

        logger.info(
            f"Monitor started (interval={self._config.interval_seconds}s, "
            f"max_concurrency={self._config.max_concurrency})"
        )

        try:
            await self._main_loop()
        except asyncio.CancelledError:
            logger.info("Monitor cancelled")
        except Exception as e:
            logger.error(f"Monitor error: {e}", exc_info=True)
            raise
        finally:
            self._running = False
            logger.info("Monitor stopped")

    async def stop(self) -> None:
        """Monitor graceful shutdown"""
        if not self._running:
            return

        logger.info("Stopping monitor...")
        self._running = False
        if self._stop_event:
            self._stop_event.set()

    async def _main_loop(self) -> None:
        while self._running:
            await self.run_once()

            # 다음 주기까지 대기 (stop 시 즉시 종료)
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=self._config.interval_seconds
                )
                break
            except asyncio.TimeoutError:
                pass

    async def run_once(self) -> None:
        """running 잡 전체를 한 번 점검"""
        jobs = await self._store.list_jobs_by_status(JobStatus.RUNNING)
        if not jobs:
            logger.debug("No running jobs")
            return

        logger.debug(f"Checking {len(jobs)} running jobs")
        await asyncio.gather(*(self._check_job_guarded(job) for job in jobs))

    async def _check_job_guarded(self, job: Job) -> None:
        async with self._semaphore:
            try:
                await self.check_job(job)
            except Exception as e:
                logger.error(f"Error checking job {job.id}: {e}", exc_info=True)

    async def check_job(self, job: Job) -> None:
        """잡 하나의 머신 상태를 보고 결과 확정"""
        log = JobLogger(logger, schedule_id=job.schedule_id, job_id=job.id, machine_id=job.machine_id)

        if not job.machine_id:
            log.warning("Running job has no machine id, skipping")
            return

        schedule = await self._store.find_schedule(job.schedule_id)

        async with self._client_factory(schedule.app_name) as client:
            try:
                handle = await client.get(job.machine_id)
            except MachineNotFoundError:
                log.warning("Machine no longer exists")
                await self._fail(job, -1, MACHINE_GONE_MESSAGE, log)
                return

            match handle.state:
                case MachineState.DESTROYED:
                    await self._record_exit(job, handle, log)
                case MachineState.STOPPED if handle.find_event("exit") is not None:
                    await self._record_exit(job, handle, log)
                    await self._destroy(client, handle, log)
                case _:
                    if has_exceeded_timeout(schedule, job, handle):
                        log.warning(f"Job exceeded command timeout of {schedule.command_timeout}s")
                        await self._destroy(client, handle, log)
                        await self._fail(job, -1, TIMEOUT_MESSAGE, log)

    async def _record_exit(self, job: Job, handle: MachineHandle, log: JobLogger) -> None:
        """exit 이벤트의 종료 코드로 잡 결과 기록"""
        exit_event = handle.find_event("exit")
        if exit_event is None or exit_event.exit_code is None:
            log.error(f"Machine is {handle.state.value} but has no exit event, leaving job as is")
            return

        exit_code = exit_event.exit_code
        if exit_code == 0:
            updated = await self._store.complete_job(job.id, 0, "", expected_status=JobStatus.RUNNING)
            if updated:
                log.info("Job completed")
        else:
            updated = await self._store.fail_job(job.id, exit_code, "", expected_status=JobStatus.RUNNING)
            if updated:
                log.info(f"Job failed with exit code {exit_code}")

        if not updated:
            log.info("Job was already finalized, skipping")

    async def _fail(self, job: Job, exit_code: int, message: str, log: JobLogger) -> None:
        updated = await self._store.fail_job(job.id, exit_code, message, expected_status=JobStatus.RUNNING)
        if not updated:
            log.info("Job was already finalized, skipping")

    async def _destroy(self, client: BaseMachineClient, handle: MachineHandle, log: JobLogger) -> None:
        try:
            await client.destroy(handle)
        except MachineError as e:
            log.error(f"Failed to destroy machine {handle.id}: {e.message}")

    @property
    def is_running(self) -> bool:
        """실행 중 여부"""
        return self._running
