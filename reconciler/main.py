"""
Reconciler: 기동 시 상태 정합성 복구

프로세스가 다른 작업을 시작하기 전에 한 번 실행하여
비정상 종료/재시작 사이에 어긋난 잡과 머신 상태를 맞춥니다.

1. 머신 기준 점검 (앱별로 이 서비스가 만든 머신 목록)
    - 잡이 없는 머신: 경고만 남김 (삭제하지 않음)
    - running 잡 + started가 아닌 머신: 머신 파기, 잡 failed
    - running 잡 + command_timeout 초과: 머신 파기, 잡 failed
    - 종료된 잡 + 남아 있는 머신: 머신 파기
2. 잡 기준 점검 (pending/running 잡)
    - pending: 머신이 있으면 파기, 잡 failed
    - running + machine_id 없음 / 머신 없음: 잡 failed
    - running + started 머신 + command_timeout 초과: 머신 파기, 잡 failed
    - running + destroyed 머신: Monitor가 종료 코드를 수집하도록 둠

저장소 오류는 즉시 중단하고, 원격 API 오류는 항목별로 로그만 남깁니다.
"""

import logging
from dataclasses import dataclass, field
from typing import assert_never

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
from monitor.main import has_exceeded_timeout
from store import Job, JobStatus, Schedule, ScheduleNotFoundError, Store

logger = logging.getLogger(__name__)

INTERRUPTED_MESSAGE = "job was interrupted on shutdown"

# 이미 사라졌거나 사라지는 중인 머신 상태
_GONE_STATES = (MachineState.DESTROYING, MachineState.DESTROYED)


@dataclass
class ReconcileResult:
    """정합성 복구 결과"""
    failed_jobs: list[int] = field(default_factory=list)
    destroyed_machines: list[str] = field(default_factory=list)
    orphaned_machines: list[str] = field(default_factory=list)


class Reconciler:
    """기동 시 잡/머신 정합성 복구"""

    def __init__(
        self,
        store: Store,
        client_factory: MachineClientFactory | None = None,
    ):
        self._store = store
        self._client_factory = client_factory or FlyMachineClient.factory()

    async def reconcile(self) -> ReconcileResult:
        """
        정합성 복구 실행

        Raises:
            DatabaseError: 저장소 오류 (복구 중단)
        """
        result = ReconcileResult()

        schedules = await self._store.list_schedules()
        if not schedules:
            logger.info("Nothing to reconcile")
            return result

        await self._reconcile_machines(schedules, result)
        await self._reconcile_jobs(result)

        logger.info(
            f"Reconciliation complete: failed_jobs={len(result.failed_jobs)}, "
            f"destroyed_machines={len(result.destroyed_machines)}, "
            f"orphaned_machines={len(result.orphaned_machines)}"
        )
        return result

    # ============================================
    # 1. 머신 기준 점검
    # ============================================

    async def _reconcile_machines(self, schedules: list[Schedule], result: ReconcileResult) -> None:
        schedules_by_id = {s.id: s for s in schedules}
        app_names = list(dict.fromkeys(s.app_name for s in schedules))

        for app_name in app_names:
            async with self._client_factory(app_name) as client:
                try:
                    machines = await client.list()
                except MachineError as e:
                    logger.error(f"Failed to list machines for app {app_name}: {e.message}")
                    continue

                for machine in machines:
                    if not machine.is_managed:
                        continue
                    await self._reconcile_machine(client, machine, schedules_by_id, result)

    async def _reconcile_machine(
        self,
        client: BaseMachineClient,
        machine: MachineHandle,
        schedules_by_id: dict[int, Schedule],
        result: ReconcileResult,
    ) -> None:
        job = await self._store.find_job_by_machine_id(machine.id)
        if job is None:
            logger.warning(
                f"Machine {machine.id} in app {client.app_name} is not tied to an existing job"
            )
            result.orphaned_machines.append(machine.id)
            return

        log = JobLogger(logger, schedule_id=job.schedule_id, job_id=job.id, machine_id=machine.id)

        match job.status:
            case JobStatus.RUNNING:
                schedule = schedules_by_id.get(job.schedule_id)
                if machine.state is not MachineState.STARTED:
                    log.info(f"Running job's machine is {machine.state.value}, failing job")
                    await self._destroy(client, machine, log, result)
                    await self._fail_interrupted(job, log, result)
                elif schedule is not None and has_exceeded_timeout(schedule, job, machine):
                    log.info("Running job exceeded its command timeout, failing job")
                    if await self._destroy(client, machine, log, result):
                        await self._fail_interrupted(job, log, result)
            case JobStatus.COMPLETED | JobStatus.FAILED:
                if machine.state not in _GONE_STATES:
                    log.warning(f"Found {job.status.value} job with leftover machine, cleaning it up")
                    await self._destroy(client, machine, log, result)
            case JobStatus.PENDING:
                # 잡 기준 점검에서 처리
                pass
            case _:
                assert_never(job.status)

    # ============================================
    # 2. 잡 기준 점검
    # ============================================

    async def _reconcile_jobs(self, result: ReconcileResult) -> None:
        jobs = await self._store.list_reconcilable_jobs()

        for job in jobs:
            log = JobLogger(logger, schedule_id=job.schedule_id, job_id=job.id, machine_id=job.machine_id)

            match job.status:
                case JobStatus.PENDING:
                    log.info("Reconciling pending job")
                    if job.machine_id:
                        await self._destroy_by_id(job, log, result)
                    await self._fail_interrupted(job, log, result)
                case JobStatus.RUNNING:
                    log.info("Reconciling running job")
                    await self._reconcile_running_job(job, log, result)
                case JobStatus.COMPLETED | JobStatus.FAILED:
                    pass
                case _:
                    assert_never(job.status)

    async def _reconcile_running_job(self, job: Job, log: JobLogger, result: ReconcileResult) -> None:
        if not job.machine_id:
            await self._fail_interrupted(job, log, result)
            return

        try:
            schedule = await self._store.find_schedule(job.schedule_id)
        except ScheduleNotFoundError:
            log.warning("Schedule no longer exists")
            await self._fail_interrupted(job, log, result)
            return

        async with self._client_factory(schedule.app_name) as client:
            try:
                machine = await client.get(job.machine_id)
            except MachineNotFoundError:
                await self._fail_interrupted(job, log, result)
                return
            except MachineError as e:
                log.error(f"Failed to get machine: {e.message}")
                return

            if machine.state is MachineState.DESTROYED:
                log.info("Machine already destroyed, leaving the result to the monitor")
                return

            if machine.state is MachineState.STARTED and has_exceeded_timeout(schedule, job, machine):
                if await self._destroy(client, machine, log, result):
                    await self._fail_interrupted(job, log, result)

    # ============================================
    # helpers
    # ============================================

    async def _fail_interrupted(self, job: Job, log: JobLogger, result: ReconcileResult) -> None:
        updated = await self._store.fail_job(job.id, -1, INTERRUPTED_MESSAGE, expected_status=job.status)
        if updated:
            log.info("Job marked as interrupted")
            result.failed_jobs.append(job.id)

    async def _destroy(
        self,
        client: BaseMachineClient,
        machine: MachineHandle,
        log: JobLogger,
        result: ReconcileResult,
    ) -> bool:
        try:
            await client.destroy(machine)
        except MachineError as e:
            log.error(f"Failed to destroy machine {machine.id}: {e.message}")
            return False
        result.destroyed_machines.append(machine.id)
        return True

    async def _destroy_by_id(self, job: Job, log: JobLogger, result: ReconcileResult) -> None:
        """잡에 기록된 머신 파기 (best effort)"""
        try:
            schedule = await self._store.find_schedule(job.schedule_id)
        except ScheduleNotFoundError:
            log.warning("Schedule no longer exists, cannot destroy machine")
            return

        async with self._client_factory(schedule.app_name) as client:
            await self._destroy(client, MachineHandle(id=job.machine_id), log, result)
