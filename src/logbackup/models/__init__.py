"""
Data models package.

Contains:
- Source file descriptors
- Persisted checkpoint records
- Admin API responses
"""

from .admin import CheckpointEntry, CheckpointListResponse, CycleResponse, ErrorResponse
from .backup_state import CheckpointTable, FileBackupState
from .log_file import LogFile

__all__ = [
    # Core models
    "LogFile",
    "FileBackupState",
    "CheckpointTable",

    # Admin models
    "CycleResponse",
    "CheckpointEntry",
    "CheckpointListResponse",
    "ErrorResponse",
]
