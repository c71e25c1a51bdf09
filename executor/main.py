"""
잡 실행 엔진

스케줄 하나를 1회 실행합니다: 잡 생성 -> 머신 생성 -> 명령 실행 -> 결과 기록.

상태 전이:
    pending -> running -> completed | failed

실행 방식:
    exec: 머신이 started 될 때까지 기다린 뒤 exec로 명령을 실행하고 결과를 해석합니다.
          머신은 모든 종료 경로에서 파기됩니다.
    init: 명령을 머신 init으로 지정하고 running 상태로 반환합니다.
          결과 수집과 파기는 Monitor와 auto_destroy가 맡습니다.
"""

import logging
from typing import NoReturn

from common.logging import JobLogger
from database.exception import DatabaseError
from executor.exception import JobFailedError
from executor.model import ExecutorConfig
from machine import (
    BaseMachineClient,
    ExecutionMode,
    FlyMachineClient,
    MachineClientFactory,
    MachineError,
    MachineHandle,
    MachineState,
    ProvisioningError,
)
from store import Job, JobStatus, Schedule, Store

logger = logging.getLogger(__name__)


class Executor:
    """잡 실행기"""

    def __init__(
        self,
        store: Store,
        client_factory: MachineClientFactory | None = None,
        config: ExecutorConfig | None = None,
    ):
        self._store = store
        self._client_factory = client_factory or FlyMachineClient.factory()
        self._config = config or ExecutorConfig()

    @property
    def mode(self) -> ExecutionMode:
        return self._config.mode

    async def process_job(self, schedule_id: int) -> Job:
        """
        스케줄 1회 실행

        Args:
            schedule_id: 실행할 스케줄 ID

        Returns:
            Job: 실행 후 잡 (exec: completed, init: running)

        Raises:
            ScheduleNotFoundError: 스케줄이 없음 (잡은 생성되지 않음)
            JobFailedError: 잡이 failed로 기록됨
            DatabaseError: 저장소 오류
        """
        schedule = await self._store.find_schedule(schedule_id)
        job = await self._store.create_job(schedule.id)

        log = JobLogger(logger, schedule_id=schedule.id, job_id=job.id)
        log.info(f"Processing job for schedule '{schedule.name}' (mode={self.mode.value})")

        async with self._client_factory(schedule.app_name) as client:
            handle = await self._provision(client, schedule, job, log)
            log = log.bind(machine_id=handle.id)

            try:
                await self._store.update_job_machine(job.id, handle.id)
                await self._store.update_job_status(job.id, JobStatus.RUNNING)

                if self.mode is ExecutionMode.INIT:
                    log.info("Machine launched with command as init, result is left to the monitor")
                    return await self._store.find_job(job.id)

                try:
                    await self._run(client, schedule, job, handle, log)
                finally:
                    await self._destroy(client, handle, log)

            except DatabaseError as e:
                log.error(f"Storage error while processing job: {e}")
                if self.mode is ExecutionMode.INIT:
                    await self._destroy(client, handle, log)
                await self._fail_best_effort(job.id, f"storage error: {e}", log)
                raise

        return await self._store.find_job(job.id)

    async def _provision(
        self,
        client: BaseMachineClient,
        schedule: Schedule,
        job: Job,
        log: JobLogger,
    ) -> MachineHandle:
        """머신 생성 (실패 시 잡을 exit_code 1로 종료)"""
        try:
            handle = await client.provision(schedule, job, self.mode)
        except ProvisioningError as e:
            log.error(f"Failed to provision machine: {e.message}")
            if e.handle is not None:
                await self._destroy(client, e.handle, log)
            message = f"failed to provision machine: {e.message}"
            await self._store.fail_job(job.id, 1, message)
            raise JobFailedError(job.id, 1, message) from e

        log.info(f"Machine {handle.id} provisioned in {schedule.region}")
        return handle

    async def _run(
        self,
        client: BaseMachineClient,
        schedule: Schedule,
        job: Job,
        handle: MachineHandle,
        log: JobLogger,
    ) -> None:
        """exec 방식 실행 및 결과 해석"""
        try:
            await client.wait_for_state(handle, MachineState.STARTED, self._config.start_timeout_seconds)
        except MachineError as e:
            await self._finish_failed(job.id, 1, f"machine failed to start: {e.message}", log)

        log.info(f"Executing command (timeout={schedule.command_timeout}s)")
        try:
            result = await client.exec(schedule.command, handle.id, schedule.command_timeout)
        except MachineError as e:
            await self._finish_failed(job.id, 1, f"failed to execute command: {e.message}", log)

        if result.exit_code != 0:
            await self._finish_failed(
                job.id, result.exit_code, f"job failed with exit code {result.exit_code}", log
            )

        # exit 0이어도 stderr가 있으면 실패로 본다
        if result.stderr:
            await self._finish_failed(job.id, -1, result.stderr, log)

        completed = await self._store.complete_job(
            job.id, 0, result.stdout, expected_status=JobStatus.RUNNING
        )
        if completed:
            log.info("Job completed successfully")
        else:
            log.warning("Job was already finalized, result discarded")

    async def _finish_failed(self, job_id: int, exit_code: int, message: str, log: JobLogger) -> NoReturn:
        """running 잡을 failed로 기록하고 JobFailedError 발생"""
        log.error(f"Job failed (exit_code={exit_code}): {message}")
        failed = await self._store.fail_job(job_id, exit_code, message, expected_status=JobStatus.RUNNING)
        if not failed:
            log.warning("Job was already finalized, failure not recorded")
        raise JobFailedError(job_id, exit_code, message)

    async def _fail_best_effort(self, job_id: int, message: str, log: JobLogger) -> None:
        try:
            await self._store.fail_job(job_id, 1, message)
        except DatabaseError as e:
            log.error(f"Failed to record job failure: {e}")

    async def _destroy(self, client: BaseMachineClient, handle: MachineHandle, log: JobLogger) -> None:
        """머신 파기 (실패해도 예외를 전파하지 않음)"""
        try:
            await client.destroy(handle)
        except MachineError as e:
            log.error(f"Failed to destroy machine {handle.id}: {e.message}")
