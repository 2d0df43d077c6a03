"""Storage layer for LoadFlow."""

from .database import Database
from .result_store import ResultStore

__all__ = ["Database", "ResultStore"]
