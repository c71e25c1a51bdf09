"""MachineClient 기본 인터페이스"""
from abc import ABC, abstractmethod
from typing import Callable

from machine.model import ExecResult, ExecutionMode, MachineHandle, MachineState
from store.model import Job, Schedule


class BaseMachineClient(ABC):
    """
    머신 클라이언트 기본 클래스

    하나의 앱(app_name) 범위에서 원격 머신을 생성/관찰/파기합니다.
    원격 호출은 모두 MachineError 계열 예외로 실패를 알립니다.

    사용 예시:
        async with client_factory(schedule.app_name) as client:
            handle = await client.provision(schedule, job, ExecutionMode.EXEC)
    """

    def __init__(self, app_name: str):
        self._app_name = app_name

    @property
    def app_name(self) -> str:
        return self._app_name

    @abstractmethod
    async def provision(
        self,
        schedule: Schedule,
        job: Job,
        mode: ExecutionMode = ExecutionMode.EXEC,
    ) -> MachineHandle:
        """
        스케줄의 기동 설정으로 머신 생성

        생성된 머신 메타데이터에는 항상 소유 태그와 잡 ID가 들어갑니다.

        Raises:
            ProvisioningError: 생성 실패 (일부 생성된 머신은 예외의 handle에 담김)
        """
        ...

    @abstractmethod
    async def wait_for_state(
        self,
        handle: MachineHandle,
        state: MachineState,
        timeout: float,
    ) -> None:
        """
        머신이 지정 상태가 될 때까지 대기

        Raises:
            MachineTimeoutError: timeout 내에 도달하지 못한 경우
        """
        ...

    @abstractmethod
    async def exec(self, command: str, machine_id: str, timeout: float) -> ExecResult:
        """
        머신에서 명령 실행

        Raises:
            MachineExecError: 실행 요청 실패
            MachineTimeoutError: 실행 타임아웃
        """
        ...

    @abstractmethod
    async def get(self, machine_id: str) -> MachineHandle:
        """
        머신 조회

        Raises:
            MachineNotFoundError: 머신이 없는 경우
        """
        ...

    @abstractmethod
    async def destroy(self, handle: MachineHandle) -> None:
        """머신 강제 파기 (이미 없으면 성공으로 처리)"""
        ...

    @abstractmethod
    async def list(self, state: MachineState | None = None) -> list[MachineHandle]:
        """앱의 머신 목록"""
        ...

    async def close(self) -> None:
        """클라이언트 리소스 정리"""
        pass

    async def __aenter__(self) -> 'BaseMachineClient':
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


MachineClientFactory = Callable[[str], BaseMachineClient]
