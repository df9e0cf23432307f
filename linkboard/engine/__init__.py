from .cpu_percent import CpuPercentEstimator, ProcessCpuTracker, process_cpu_percent
from .history import HistoryRing, history_point
from .rwlock import ReadWriteLock
from .ttl_cache import TTLCache

__all__ = [
    "CpuPercentEstimator",
    "ProcessCpuTracker",
    "process_cpu_percent",
    "HistoryRing",
    "history_point",
    "ReadWriteLock",
    "TTLCache",
]
