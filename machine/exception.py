"""
머신 클라이언트 관련 예외 클래스 정의
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from machine.model import MachineHandle


class MachineError(Exception):
    """머신 클라이언트 기본 예외"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class MachineClientError(MachineError):
    """API 호출 실패 (HTTP 오류, 전송 오류)"""
    def __init__(self, message: str, status_code: int | None = None):
        self.status_code = status_code
        super().__init__(message)


class MachineNotFoundError(MachineError):
    """머신을 찾을 수 없음 (파기 후 보존 기간 경과 포함)"""
    def __init__(self, machine_id: str):
        self.machine_id = machine_id
        super().__init__(f"Machine {machine_id} not found")


class MachineTimeoutError(MachineError):
    """대기/exec 타임아웃"""
    pass


class ProvisioningError(MachineError):
    """머신 생성 실패 (일부 생성된 머신이 있으면 handle에 담김)"""
    def __init__(self, message: str, handle: 'MachineHandle | None' = None):
        self.handle = handle
        super().__init__(message)


class MachineExecError(MachineError):
    """원격 exec 실패"""
    def __init__(self, machine_id: str, message: str):
        self.machine_id = machine_id
        super().__init__(f"Failed to exec on machine {machine_id}: {message}")
