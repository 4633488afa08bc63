"""Performance engine services."""

from performance_engine.services.performance_service import PerformanceService

__all__ = ["PerformanceService"]
