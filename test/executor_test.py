"""
잡 실행 엔진 테스트

테스트 항목:
1. exec 방식 정상 종료 (completed, stdout 기록, 머신 파기)
2. 머신 생성 실패 (exit_code 1)
3. 머신 기동 실패 / exec 실패
4. 0이 아닌 종료 코드, stderr 출력
5. init 방식 (running 상태로 반환, 머신 유지)
6. 없는 스케줄

실행: python -m pytest test/executor_test.py -v
"""

import logging

import pytest

from executor import Executor, ExecutorConfig, JobFailedError
from machine import (
    ExecResult,
    ExecutionMode,
    MachineExecError,
    MachineState,
    MachineTimeoutError,
    ProvisioningError,
)
from machine.model import MachineHandle
from store import JobStatus, ScheduleNotFoundError

logging.basicConfig(
    level=logging.DEBUG,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@pytest.fixture
def executor(store, cloud):
    return Executor(store, cloud.factory)


async def only_job(store, schedule):
    jobs = await store.list_jobs(schedule.id)
    assert len(jobs) == 1
    return jobs[0]


class TestExecMode:
    """exec 방식 실행 테스트"""

    @pytest.mark.asyncio
    async def test_success(self, executor, store, cloud, schedule):
        """정상 종료 시 completed + stdout, 머신 파기"""
        job = await executor.process_job(schedule.id)

        assert job.status is JobStatus.COMPLETED
        assert job.exit_code == 0
        assert job.stdout == "ok\n"
        assert job.machine_id is not None
        assert job.finished_at is not None
        assert cloud.destroyed == [job.machine_id]
        assert cloud.provisioned_modes == [ExecutionMode.EXEC]
        logger.info("Exec success test passed")

    @pytest.mark.asyncio
    async def test_nonzero_exit(self, executor, store, cloud, schedule):
        """0이 아닌 종료 코드는 failed"""
        cloud.exec_result = ExecResult(exit_code=3, stdout="", stderr="")

        with pytest.raises(JobFailedError) as exc_info:
            await executor.process_job(schedule.id)
        assert exc_info.value.exit_code == 3

        job = await only_job(store, schedule)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == 3
        assert job.stderr == "job failed with exit code 3"
        assert cloud.destroyed == [job.machine_id]
        logger.info("Nonzero exit test passed")

    @pytest.mark.asyncio
    async def test_stderr_output(self, executor, store, cloud, schedule):
        """exit 0이라도 stderr가 있으면 failed(-1)"""
        cloud.exec_result = ExecResult(exit_code=0, stdout="partial", stderr="warning: disk full")

        with pytest.raises(JobFailedError):
            await executor.process_job(schedule.id)

        job = await only_job(store, schedule)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == -1
        assert job.stderr == "warning: disk full"
        logger.info("Stderr output test passed")

    @pytest.mark.asyncio
    async def test_machine_failed_to_start(self, executor, store, cloud, schedule):
        """기동 대기 실패 시 failed(1), 머신 파기"""
        cloud.wait_error = MachineTimeoutError("timed out waiting for machine")

        with pytest.raises(JobFailedError):
            await executor.process_job(schedule.id)

        job = await only_job(store, schedule)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == 1
        assert job.stderr.startswith("machine failed to start")
        assert cloud.destroyed == [job.machine_id]
        logger.info("Machine failed to start test passed")

    @pytest.mark.asyncio
    async def test_exec_error(self, executor, store, cloud, schedule):
        """exec 요청 실패 시 failed(1)"""
        cloud.exec_error = MachineExecError("m-1", "connection reset")

        with pytest.raises(JobFailedError):
            await executor.process_job(schedule.id)

        job = await only_job(store, schedule)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == 1
        assert cloud.destroyed == [job.machine_id]
        logger.info("Exec error test passed")


class TestProvisioning:
    """머신 생성 실패 테스트"""

    @pytest.mark.asyncio
    async def test_provision_failure(self, executor, store, cloud, schedule):
        """생성 실패 시 machine_id 없이 failed(1)"""
        cloud.provision_error = ProvisioningError("capacity exhausted")

        with pytest.raises(JobFailedError) as exc_info:
            await executor.process_job(schedule.id)
        assert exc_info.value.exit_code == 1

        job = await only_job(store, schedule)
        assert job.status is JobStatus.FAILED
        assert job.exit_code == 1
        assert job.machine_id is None
        assert job.stderr.startswith("failed to provision machine")
        assert cloud.destroyed == []
        logger.info("Provision failure test passed")

    @pytest.mark.asyncio
    async def test_partial_machine_destroyed(self, executor, store, cloud, schedule):
        """생성 후 실패 상태가 된 머신은 파기"""
        partial = MachineHandle(id="m-partial", state=MachineState.FAILED)
        cloud.provision_error = ProvisioningError("machine failed", handle=partial)

        with pytest.raises(JobFailedError):
            await executor.process_job(schedule.id)

        assert cloud.destroyed == ["m-partial"]
        logger.info("Partial machine destroy test passed")

    @pytest.mark.asyncio
    async def test_missing_schedule(self, executor, store, cloud, schedule):
        """없는 스케줄은 잡을 만들지 않음"""
        with pytest.raises(ScheduleNotFoundError):
            await executor.process_job(schedule.id + 100)

        assert await store.list_jobs(schedule.id) == []
        assert cloud.machines == {}
        logger.info("Missing schedule test passed")


class TestInitMode:
    """init 방식 실행 테스트"""

    @pytest.mark.asyncio
    async def test_returns_running(self, store, cloud, schedule):
        """init 방식은 running으로 반환하고 머신을 남겨둠"""
        executor = Executor(store, cloud.factory, ExecutorConfig(mode=ExecutionMode.INIT))

        job = await executor.process_job(schedule.id)

        assert job.status is JobStatus.RUNNING
        assert job.machine_id in cloud.machines
        assert cloud.destroyed == []
        assert cloud.provisioned_modes == [ExecutionMode.INIT]
        logger.info("Init mode test passed")
