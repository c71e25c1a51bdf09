"""
원격 머신 클라이언트 패키지

사용 예시:
    from machine import FlyMachineClient, ExecutionMode

    factory = FlyMachineClient.factory()
    async with factory("my-app") as client:
        handle = await client.provision(schedule, job, ExecutionMode.EXEC)
"""

from machine.base import BaseMachineClient, MachineClientFactory
from machine.fly import FlyMachineClient, MachineClientConfig
from machine.model import (
    ExecResult,
    ExecutionMode,
    MachineEvent,
    MachineHandle,
    MachineState,
)
from machine.exception import (
    MachineError,
    MachineClientError,
    MachineNotFoundError,
    MachineTimeoutError,
    ProvisioningError,
    MachineExecError,
)

__all__ = [
    'BaseMachineClient',
    'MachineClientFactory',
    'FlyMachineClient',
    'MachineClientConfig',
    'ExecResult',
    'ExecutionMode',
    'MachineEvent',
    'MachineHandle',
    'MachineState',
    'MachineError',
    'MachineClientError',
    'MachineNotFoundError',
    'MachineTimeoutError',
    'ProvisioningError',
    'MachineExecError',
]
