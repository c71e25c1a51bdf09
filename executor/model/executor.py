"""Executor 설정 모델"""

from pydantic import BaseModel, Field

from machine.model import ExecutionMode


class ExecutorConfig(BaseModel):
    """Executor 설정"""
    mode: ExecutionMode = Field(default=ExecutionMode.EXEC, description="exec: 동기 실행, init: 비동기 실행")
    start_timeout_seconds: int = Field(default=60, ge=1, le=600, description="머신 started 대기 시간")
