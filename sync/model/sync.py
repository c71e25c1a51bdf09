"""동기화 설정/결과 모델"""

from pydantic import BaseModel, Field


class SyncConfig(BaseModel):
    """동기화 설정"""
    schedules_file: str = Field(default="/usr/local/share/schedules.json", description="스케줄 정의 JSON 파일")
    crontab_path: str = Field(default="/data/crontab", description="설치된 크론탭 보관 경로")
    executable: str = Field(default="/usr/local/bin/process-job", description="크론이 호출할 실행 파일")
    crontab_command: str = Field(default="crontab", description="크론탭 설치 명령")


class SyncResult(BaseModel):
    """스케줄 동기화 결과 (스케줄 이름 목록)"""
    created: list[str] = Field(default_factory=list)
    updated: list[str] = Field(default_factory=list)
    unchanged: list[str] = Field(default_factory=list)
    deleted: list[str] = Field(default_factory=list)
