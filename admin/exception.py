"""
Admin 관련 예외 클래스 정의
"""


class AdminError(Exception):
    """Admin 기본 예외"""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class ScheduleNotFoundError(AdminError):
    """스케줄을 찾을 수 없음"""
    def __init__(self, schedule_id: int):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule with id {schedule_id} not found")


class ScheduleValidationError(AdminError):
    """스케줄 유효성 검사 실패 (잘못된 크론 표현식 등)"""
    pass


class ScheduleDuplicateError(AdminError):
    """스케줄 이름 중복"""
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Schedule with name '{name}' already exists")


class JobNotFoundError(AdminError):
    """잡을 찾을 수 없음"""
    def __init__(self, job_id: int):
        self.job_id = job_id
        super().__init__(f"Job with id {job_id} not found")


class HandlerNotConfiguredError(AdminError):
    """핸들러 의존성(Executor 등)이 설정되지 않음"""
    pass
