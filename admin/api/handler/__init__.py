"""Admin API 핸들러 패키지"""

from admin.api.handler.schedule import ScheduleHandler
from admin.api.handler.job import JobHandler

__all__ = ['ScheduleHandler', 'JobHandler']
