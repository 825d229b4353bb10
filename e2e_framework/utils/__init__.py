"""
Utilities Module

Retry helpers and report archival.
"""

from .report_backup import BackupEntry, ReportBackupManager
from .retry_handler import CircuitBreaker, is_retryable_browser_error, retry, retry_browser_action

__all__ = [
    "BackupEntry",
    "ReportBackupManager",
    "CircuitBreaker",
    "is_retryable_browser_error",
    "retry",
    "retry_browser_action"
]
