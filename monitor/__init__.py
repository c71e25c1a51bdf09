from monitor.main import Monitor
from monitor.model import MonitorConfig

__all__ = ['Monitor', 'MonitorConfig']
