"""
Store: 스케줄/잡 영속화 패키지

사용 예시:
    from store import Store, JobStatus

    store = Store()
    job = await store.create_job(schedule.id)
    await store.update_job_status(job.id, JobStatus.RUNNING)
"""

from store.main import Store
from store.model import (
    GuestConfig,
    Job,
    JobStatus,
    MachineConfig,
    RestartConfig,
    Schedule,
)
from store.exception import (
    StoreError,
    NotFoundError,
    ScheduleNotFoundError,
    JobNotFoundError,
    DuplicateScheduleError,
)

__all__ = [
    'Store',
    'Schedule',
    'MachineConfig',
    'GuestConfig',
    'RestartConfig',
    'Job',
    'JobStatus',
    'StoreError',
    'NotFoundError',
    'ScheduleNotFoundError',
    'JobNotFoundError',
    'DuplicateScheduleError',
]
