from pawprint.server.store.base import MonitorStore
from pawprint.server.store.memory import MemoryMonitorStore
from pawprint.server.store.sql import SqlMonitorStore

__all__ = ["MemoryMonitorStore", "MonitorStore", "SqlMonitorStore"]
