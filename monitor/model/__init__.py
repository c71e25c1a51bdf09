from monitor.model.monitor import MonitorConfig

__all__ = ['MonitorConfig']
