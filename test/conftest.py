"""
테스트 공용 fixture

- database: 임시 경로의 SQLite DB (DatabaseRegistry 사용)
- store: Store 인스턴스
- cloud: 원격 머신 API를 흉내내는 FakeCloud
- schedule: 미리 생성된 스케줄
"""

import itertools
import sys
from pathlib import Path

import pytest
import pytest_asyncio

sys.path.insert(0, str(Path(__file__).parent.parent))

from database import get_db
from database.registry import DatabaseRegistry
from machine import (
    BaseMachineClient,
    ExecResult,
    ExecutionMode,
    MachineEvent,
    MachineHandle,
    MachineNotFoundError,
    MachineState,
)
from machine.model import JOB_ID_KEY, MANAGED_BY_KEY, MANAGED_BY_VALUE, SCHEDULE_KEY
from store import Schedule, Store


class FakeCloud:
    """앱별 머신 상태를 메모리에 보관하는 가짜 원격 API"""

    def __init__(self):
        self.machines: dict[str, MachineHandle] = {}
        self.destroyed: list[str] = []
        self.provisioned_modes: list[ExecutionMode] = []
        self.exec_result = ExecResult(exit_code=0, stdout="ok\n", stderr="")

        # 지정하면 해당 호출에서 예외 발생
        self.provision_error: Exception | None = None
        self.wait_error: Exception | None = None
        self.exec_error: Exception | None = None
        self.destroy_error: Exception | None = None
        self.list_error: Exception | None = None

        self._ids = itertools.count(1)

    def factory(self, app_name: str) -> "FakeMachineClient":
        return FakeMachineClient(self, app_name)

    def add_machine(
        self,
        state: MachineState,
        job_id: int | None = None,
        events: list[MachineEvent] | None = None,
        managed: bool = True,
    ) -> MachineHandle:
        """이미 존재하는 머신 추가"""
        metadata = {}
        if managed:
            metadata[MANAGED_BY_KEY] = MANAGED_BY_VALUE
        if job_id is not None:
            metadata[JOB_ID_KEY] = str(job_id)

        handle = MachineHandle(
            id=f"m-{next(self._ids)}",
            state=state,
            config={"metadata": metadata},
            events=events or [],
        )
        self.machines[handle.id] = handle
        return handle


class FakeMachineClient(BaseMachineClient):
    """FakeCloud를 사용하는 머신 클라이언트"""

    def __init__(self, cloud: FakeCloud, app_name: str):
        super().__init__(app_name)
        self._cloud = cloud

    async def provision(self, schedule, job, mode=ExecutionMode.EXEC) -> MachineHandle:
        if self._cloud.provision_error is not None:
            raise self._cloud.provision_error

        self._cloud.provisioned_modes.append(mode)
        handle = self._cloud.add_machine(MachineState.CREATED, job_id=job.id)
        handle.config["metadata"][SCHEDULE_KEY] = schedule.name
        return handle

    async def wait_for_state(self, handle, state, timeout) -> None:
        if self._cloud.wait_error is not None:
            raise self._cloud.wait_error
        self._cloud.machines[handle.id].state = state

    async def exec(self, command, machine_id, timeout) -> ExecResult:
        if self._cloud.exec_error is not None:
            raise self._cloud.exec_error
        return self._cloud.exec_result

    async def get(self, machine_id) -> MachineHandle:
        if machine_id not in self._cloud.machines:
            raise MachineNotFoundError(machine_id)
        return self._cloud.machines[machine_id]

    async def destroy(self, handle) -> None:
        if self._cloud.destroy_error is not None:
            raise self._cloud.destroy_error
        self._cloud.destroyed.append(handle.id)
        if handle.id in self._cloud.machines:
            self._cloud.machines[handle.id].state = MachineState.DESTROYED

    async def list(self, state=None) -> list[MachineHandle]:
        if self._cloud.list_error is not None:
            raise self._cloud.list_error
        # 상태 지정이 없으면 destroyed 머신은 목록에 나오지 않음
        if state is None:
            return [m for m in self._cloud.machines.values() if m.state is not MachineState.DESTROYED]
        return [m for m in self._cloud.machines.values() if m.state is state]


def exit_event(exit_code: int, timestamp: int = 2_000) -> MachineEvent:
    """exit 이벤트 생성"""
    return MachineEvent(
        type="exit",
        status="stopped",
        source="flyd",
        timestamp=timestamp,
        request={"exit_event": {"exit_code": exit_code}},
    )


def start_event(timestamp: int) -> MachineEvent:
    """start 이벤트 생성"""
    return MachineEvent(type="start", status="started", source="user", timestamp=timestamp)


def make_schedule(name: str = "uptime-check", **overrides) -> Schedule:
    """테스트용 스케줄 정의"""
    fields = {
        "name": name,
        "app_name": "my-app",
        "schedule": "*/5 * * * *",
        "command": "uptime",
        "region": "iad",
        "config": {"image": "ubuntu:22.04"},
    }
    fields.update(overrides)
    return Schedule(**fields)


@pytest_asyncio.fixture
async def database(tmp_path):
    """테스트용 Database 인스턴스 (임시 파일)"""
    DatabaseRegistry.clear()

    config = {
        'databases': {
            'default': {
                'type': 'sqlite',
                'path': str(tmp_path / "state.db"),
                'pool': {'pool_size': 3, 'pool_timeout': 5.0},
            }
        }
    }
    await DatabaseRegistry.init_from_config(config)

    yield get_db('default')
    await DatabaseRegistry.close_all()


@pytest_asyncio.fixture
async def store(database):
    return Store()


@pytest.fixture
def cloud():
    return FakeCloud()


@pytest_asyncio.fixture
async def schedule(store):
    """미리 생성된 스케줄"""
    return await store.create_schedule(make_schedule())
