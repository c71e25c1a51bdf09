"""
머신 관련 모델 정의

Fly Machines API 응답 형식을 따르며, 사용하지 않는 필드는 그대로 보존합니다.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# 이 서비스가 만든 머신을 식별하는 메타데이터
MANAGED_BY_KEY = "managed-by"
MANAGED_BY_VALUE = "cron-manager"
JOB_ID_KEY = "cron-manager-job-id"
SCHEDULE_KEY = "cron-manager-schedule"
LEGACY_MANAGED_KEY = "managed-by-cron-manager"


class ExecutionMode(str, Enum):
    """
    잡 실행 방식

    EXEC: 머신 기동 후 exec로 명령을 동기 실행
    INIT: 명령을 머신 init 명령으로 지정하고 결과는 Monitor가 수집
    """
    EXEC = "exec"
    INIT = "init"


class MachineState(str, Enum):
    """머신 상태"""
    CREATED = "created"
    STARTING = "starting"
    STARTED = "started"
    STOPPING = "stopping"
    STOPPED = "stopped"
    SUSPENDED = "suspended"
    REPLACING = "replacing"
    DESTROYING = "destroying"
    DESTROYED = "destroyed"
    FAILED = "failed"
    UNKNOWN = "unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class MachineEvent(BaseModel):
    """머신 이벤트 로그 항목"""
    model_config = ConfigDict(extra="allow")

    type: str
    status: str | None = None
    source: str | None = None
    timestamp: int = 0  # epoch milliseconds
    request: dict[str, Any] | None = None

    @property
    def time(self) -> datetime:
        return datetime.fromtimestamp(self.timestamp / 1000, tz=timezone.utc)

    @property
    def exit_code(self) -> int | None:
        """exit 이벤트의 종료 코드 (없으면 None)"""
        if not self.request:
            return None
        exit_event = self.request.get("exit_event") or {}
        return exit_event.get("exit_code")


class MachineHandle(BaseModel):
    """머신 정보"""
    model_config = ConfigDict(extra="allow")

    id: str
    name: str | None = None
    state: MachineState = MachineState.UNKNOWN
    region: str | None = None
    instance_id: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)
    events: list[MachineEvent] = Field(default_factory=list)

    @property
    def metadata(self) -> dict[str, str]:
        return self.config.get("metadata") or {}

    @property
    def is_managed(self) -> bool:
        """이 서비스가 만든 머신인지 여부 (이전 버전 태그 포함)"""
        metadata = self.metadata
        return (
            metadata.get(MANAGED_BY_KEY) == MANAGED_BY_VALUE
            or metadata.get(LEGACY_MANAGED_KEY) == "true"
        )

    @property
    def job_id(self) -> int | None:
        value = self.metadata.get(JOB_ID_KEY)
        return int(value) if value and value.isdigit() else None

    def find_event(self, event_type: str) -> MachineEvent | None:
        """가장 최근의 해당 타입 이벤트"""
        matched = [e for e in self.events if e.type == event_type]
        if not matched:
            return None
        return max(matched, key=lambda e: e.timestamp)


class ExecResult(BaseModel):
    """원격 exec 결과"""
    model_config = ConfigDict(extra="allow")

    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
