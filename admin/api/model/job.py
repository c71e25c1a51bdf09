"""잡 관련 모델 정의"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from store import JobStatus


class TriggerRequest(BaseModel):
    """잡 실행 요청 (스케줄 ID)"""
    id: int


class JobResponse(BaseModel):
    """잡 응답 모델"""
    model_config = ConfigDict(from_attributes=True)

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


class JobListResponse(BaseModel):
    """잡 목록 응답 (최신순)"""
    items: list[JobResponse] = Field(default_factory=list)
    total: int
