from store.model.schedule import (
    DEFAULT_COMMAND_TIMEOUT,
    GuestConfig,
    MachineConfig,
    RestartConfig,
    Schedule,
)
from store.model.job import Job, JobStatus

__all__ = [
    'DEFAULT_COMMAND_TIMEOUT',
    'GuestConfig',
    'MachineConfig',
    'RestartConfig',
    'Schedule',
    'Job',
    'JobStatus',
]
