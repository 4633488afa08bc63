"""Persistence boundary for plans and appraisals."""

from performance_engine.repositories.base import PerformanceRepository
from performance_engine.repositories.memory import InMemoryPerformanceRepository
from performance_engine.repositories.sql import SqlPerformanceRepository

__all__ = [
    "PerformanceRepository",
    "InMemoryPerformanceRepository",
    "SqlPerformanceRepository",
]
