"""Monitor 설정 모델"""

from pydantic import BaseModel, Field


class MonitorConfig(BaseModel):
    """Monitor 설정"""
    interval_seconds: float = Field(default=5, gt=0, le=300, description="running 잡 점검 주기")
    max_concurrency: int = Field(default=10, ge=1, le=100, description="동시에 점검할 잡 수")
