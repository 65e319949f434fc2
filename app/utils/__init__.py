"""
Common utilities package for the task store.
"""

from app.utils.logger import cleanup_old_logs, list_log_files, setup_logger

__all__ = [
    "setup_logger",
    "list_log_files",
    "cleanup_old_logs",
]
