"""
잡 실행 관련 예외 클래스 정의
"""


class ExecutorError(Exception):
    """Executor 기본 예외"""
    pass


class JobFailedError(ExecutorError):
    """잡이 failed로 종료됨"""
    def __init__(self, job_id: int, exit_code: int, message: str):
        self.job_id = job_id
        self.exit_code = exit_code
        self.message = message
        super().__init__(f"Job {job_id} failed (exit_code={exit_code}): {message}")
