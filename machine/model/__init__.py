from machine.model.machine import (
    ExecResult,
    ExecutionMode,
    MachineEvent,
    MachineHandle,
    MachineState,
    MANAGED_BY_KEY,
    MANAGED_BY_VALUE,
    JOB_ID_KEY,
    SCHEDULE_KEY,
)

__all__ = [
    'ExecResult',
    'ExecutionMode',
    'MachineEvent',
    'MachineHandle',
    'MachineState',
    'MANAGED_BY_KEY',
    'MANAGED_BY_VALUE',
    'JOB_ID_KEY',
    'SCHEDULE_KEY',
]
