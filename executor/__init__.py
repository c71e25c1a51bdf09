from executor.main import Executor
from executor.model import ExecutorConfig
from executor.exception import ExecutorError, JobFailedError

__all__ = ['Executor', 'ExecutorConfig', 'ExecutorError', 'JobFailedError']
