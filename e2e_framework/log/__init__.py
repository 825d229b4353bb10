"""
Logging Module

Worker- and scenario-scoped logging for parallel test runs.
"""

from .manager import (
    LoggerHandle,
    LoggingContext,
    LoggingManager,
    get_logging_manager,
    sanitize_scenario_name,
    set_logging_manager,
)

__all__ = [
    "LoggerHandle",
    "LoggingContext",
    "LoggingManager",
    "get_logging_manager",
    "sanitize_scenario_name",
    "set_logging_manager"
]
