"""
스케줄/크론탭 동기화 관련 예외 클래스 정의
"""


class SyncError(Exception):
    """동기화 기본 예외"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ScheduleFileError(SyncError):
    """스케줄 정의 파일을 읽거나 파싱할 수 없음"""
    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Failed to read schedules file {path}: {message}")


class ScheduleValidationError(SyncError):
    """스케줄 정의가 유효하지 않음"""
    def __init__(self, name: str, message: str):
        self.name = name
        super().__init__(f"Invalid schedule '{name}': {message}")


class CrontabInstallError(SyncError):
    """crontab 설치 실패 (기존 크론탭 파일은 그대로 유지)"""
    def __init__(self, returncode: int | None, output: str):
        self.returncode = returncode
        self.output = output.strip()
        message = f"failed to sync crontab (exit status {returncode})"
        if self.output:
            message = f"{message}: {self.output}"
        super().__init__(message)
