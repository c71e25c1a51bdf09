from executor.model.executor import ExecutorConfig

__all__ = ['ExecutorConfig']
