from sync.schedules import ScheduleSync, read_schedules_file
from sync.crontab import CrontabSync, render_crontab, run_crontab
from sync.model import SyncConfig, SyncResult
from sync.exception import (
    SyncError,
    ScheduleFileError,
    ScheduleValidationError,
    CrontabInstallError,
)

__all__ = [
    'ScheduleSync',
    'read_schedules_file',
    'CrontabSync',
    'render_crontab',
    'run_crontab',
    'SyncConfig',
    'SyncResult',
    'SyncError',
    'ScheduleFileError',
    'ScheduleValidationError',
    'CrontabInstallError',
]
