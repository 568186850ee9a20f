"""
Custom exceptions for the LogBackup service.

Provides structured error handling with error codes and details that the
HTTP surface turns into JSON error responses.
"""

from typing import Any, Dict, Optional


class LogBackupException(Exception):
    """Base exception for LogBackup service."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class AuthenticationError(LogBackupException):
    """Raised when authentication fails."""

    def __init__(self, message: str = "Invalid or missing authentication token") -> None:
        super().__init__(
            message=message,
            status_code=401,
            error_code="authentication_error",
        )


class CheckpointNotFoundError(LogBackupException):
    """Raised when saving a checkpoint that was never read-or-created."""

    def __init__(self, source_name: str) -> None:
        super().__init__(
            message=f"No checkpoint exists for '{source_name}'",
            status_code=404,
            error_code="checkpoint_not_found",
            details={"file": source_name},
        )


class CheckpointPersistError(LogBackupException):
    """Raised when the checkpoint table cannot be written to disk."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="checkpoint_persist_error",
            details=details,
        )


class SourceReadError(LogBackupException):
    """Raised when a source log file cannot be listed or opened."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="source_read_error",
            details=details,
        )


class SinkWriteError(LogBackupException):
    """Raised when appending to a backup file fails."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="sink_write_error",
            details=details,
        )
