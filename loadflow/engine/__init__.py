"""Load generation engine for LoadFlow."""

from .collector import ResultCollector, calculate_percentile
from .workers import LoadWorker, TaskBasedWorker, HybridWorker, create_worker
from .runner import LoadRunner

__all__ = [
    "ResultCollector",
    "calculate_percentile",
    "LoadWorker",
    "TaskBasedWorker",
    "HybridWorker",
    "create_worker",
    "LoadRunner",
]
