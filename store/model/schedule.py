"""
스케줄 모델 정의

schedules.json의 각 항목과 schedules 테이블의 한 행에 대응합니다.
"""

import json
import shlex
from datetime import datetime
from typing import Any

from croniter import croniter
from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_COMMAND_TIMEOUT = 30


class GuestConfig(BaseModel):
    """머신 사양"""
    model_config = ConfigDict(extra="allow")

    cpu_kind: str = "shared"
    cpus: int = 1
    memory_mb: int = 256


class RestartConfig(BaseModel):
    """머신 재시작 정책"""
    model_config = ConfigDict(extra="allow")

    policy: str = "no"
    max_retries: int = 0


class MachineConfig(BaseModel):
    """
    머신 기동 설정

    알 수 없는 키도 그대로 보존하여 머신 API에 전달합니다.
    """
    model_config = ConfigDict(extra="allow")

    image: str
    guest: GuestConfig | None = None
    restart: RestartConfig | None = None
    auto_destroy: bool = False
    metadata: dict[str, str] = Field(default_factory=dict)

    def to_api(self) -> dict[str, Any]:
        """머신 API 요청용 dict (None 필드 제외)"""
        return self.model_dump(exclude_none=True)


class Schedule(BaseModel):
    """스케줄 엔티티"""
    id: int | None = None
    name: str = Field(min_length=1)
    app_name: str = Field(min_length=1)
    schedule: str
    command: str = Field(min_length=1)
    command_timeout: int = DEFAULT_COMMAND_TIMEOUT
    region: str = Field(min_length=1)
    enabled: bool = True
    config: MachineConfig
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("schedule")
    @classmethod
    def validate_schedule(cls, value: str) -> str:
        value = value.strip()
        if not croniter.is_valid(value):
            raise ValueError(f"Invalid cron expression: {value}")
        return value

    @field_validator("command")
    @classmethod
    def validate_command(cls, value: str) -> str:
        try:
            shlex.split(value)
        except ValueError as e:
            raise ValueError(f"Invalid command: {e}") from e
        return value

    @field_validator("command_timeout", mode="before")
    @classmethod
    def default_command_timeout(cls, value: Any) -> Any:
        # 0 또는 null은 기본값 사용
        if value is None or value == 0:
            return DEFAULT_COMMAND_TIMEOUT
        return value

    @field_validator("command_timeout")
    @classmethod
    def validate_command_timeout(cls, value: int) -> int:
        if value < 0:
            raise ValueError("command_timeout must be positive")
        return value

    @classmethod
    def from_row(cls, row) -> "Schedule":
        """DB row를 Schedule로 변환"""
        row_dict = dict(row)
        row_dict["config"] = json.loads(row_dict.get("config") or "{}")
        return cls.model_validate(row_dict)

    def to_params(self) -> dict[str, Any]:
        """INSERT/UPDATE 쿼리 파라미터"""
        return {
            "name": self.name,
            "app_name": self.app_name,
            "schedule": self.schedule,
            "command": self.command,
            "command_timeout": self.command_timeout,
            "region": self.region,
            "enabled": int(self.enabled),
            "config": self.config.model_dump_json(),
        }

    def same_definition(self, other: "Schedule") -> bool:
        """ID/타임스탬프를 제외한 정의가 같은지 비교"""
        exclude = {"id", "created_at", "updated_at"}
        return self.model_dump(exclude=exclude) == other.model_dump(exclude=exclude)
