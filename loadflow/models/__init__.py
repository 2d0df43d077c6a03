"""Core data models for LoadFlow."""

from .enums import TerminationMode, WorkerMode
from .messages import (
    StepResultMessage,
    StartLoadMessage,
    RequestStartedMessage,
    BatchCompletedMessage,
    WorkerThreadCountMessage,
)
from .settings import LoadSettings, LoadExecutionPlan
from .result import LoadResult

__all__ = [
    "TerminationMode",
    "WorkerMode",
    "StepResultMessage",
    "StartLoadMessage",
    "RequestStartedMessage",
    "BatchCompletedMessage",
    "WorkerThreadCountMessage",
    "LoadSettings",
    "LoadExecutionPlan",
    "LoadResult",
]
