"""잡 모델 정의"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class JobStatus(str, Enum):
    """잡 상태 (pending -> running -> completed | failed)"""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


class Job(BaseModel):
    """잡 엔티티 (스케줄 1회 실행)"""
    id: int
    schedule_id: int
    status: JobStatus
    machine_id: str | None = None
    exit_code: int | None = None
    stdout: str | None = None
    stderr: str | None = None
    created_at: datetime
    updated_at: datetime
    finished_at: datetime | None = None

    @classmethod
    def from_row(cls, row) -> "Job":
        return cls.model_validate(dict(row))
