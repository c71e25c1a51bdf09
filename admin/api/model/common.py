"""공통 모델 정의"""

from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """에러 응답 ({"error": "<message>"})"""
    error: str


class SyncResponse(BaseModel):
    """크론탭 동기화 응답"""
    synced: int


class HealthResponse(BaseModel):
    """상태 확인 응답"""
    status: str
    database: str
    version: str
