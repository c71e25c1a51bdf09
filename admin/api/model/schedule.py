"""스케줄 관련 모델 정의"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ScheduleResponse(BaseModel):
    """스케줄 응답 모델"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    app_name: str
    schedule: str
    command: str
    command_timeout: int
    region: str
    enabled: bool
    config: dict[str, Any]
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ScheduleCreateRequest(BaseModel):
    """
    스케줄 생성 요청

    크론 표현식과 기동 설정은 핸들러에서 검증하여 400으로 응답합니다.
    """
    name: str = Field(..., min_length=1, max_length=100)
    app_name: str = Field(..., min_length=1)
    schedule: str = Field(..., min_length=1, max_length=100)
    command: str = Field(..., min_length=1)
    command_timeout: int | None = Field(default=None, ge=0, le=86400)
    region: str = Field(..., min_length=1)
    enabled: bool = True
    config: dict[str, Any]


class ScheduleListResponse(BaseModel):
    """스케줄 목록 응답"""
    items: list[ScheduleResponse] = Field(default_factory=list)
    total: int
