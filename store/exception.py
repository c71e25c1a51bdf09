"""
Store 관련 예외 클래스 정의
"""

from database.exception import DatabaseError


class StoreError(DatabaseError):
    """Store 기본 예외"""
    pass


class NotFoundError(StoreError):
    """조회 대상이 없음"""
    pass


class ScheduleNotFoundError(NotFoundError):
    """스케줄을 찾을 수 없음"""
    def __init__(self, schedule_id: int | None = None, name: str | None = None):
        self.schedule_id = schedule_id
        self.name = name
        if name is not None:
            self.message = f"Schedule with name '{name}' not found"
        else:
            self.message = f"Schedule with id {schedule_id} not found"
        super().__init__(self.message)


class JobNotFoundError(NotFoundError):
    """잡을 찾을 수 없음"""
    def __init__(self, job_id: int):
        self.job_id = job_id
        self.message = f"Job with id {job_id} not found"
        super().__init__(self.message)


class DuplicateScheduleError(StoreError):
    """스케줄 이름 중복"""
    def __init__(self, name: str):
        self.name = name
        self.message = f"Schedule with name '{name}' already exists"
        super().__init__(self.message)
