"""
Admin API data models.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class CycleResponse(BaseModel):
    """Summary of a forced backup cycle."""

    message: str = Field(..., description="Result message")
    files_seen: int = Field(..., description="Files visible when the cycle started")
    files_processed: int = Field(..., description="Files that produced a new checkpoint")
    files_failed: int = Field(..., description="Files skipped because of an error")
    lines_written: int = Field(..., description="Sanitized lines appended to backups")
    duration_ms: int = Field(..., description="Cycle duration in milliseconds")
    cancelled: bool = Field(default=False, description="Whether a stop request cut the cycle short")


class CheckpointEntry(BaseModel):
    """One row of the checkpoint table."""

    file: str = Field(..., description="Source file name")
    offset: int = Field(..., description="Byte offset already backed up")
    backup_file: str = Field(..., description="Backup file receiving this source")


class CheckpointListResponse(BaseModel):
    """Checkpoint table listing."""

    checkpoints: List[CheckpointEntry] = Field(default_factory=list)
    total: int = Field(..., description="Number of tracked source files")


class ErrorResponse(BaseModel):
    """
    Standard error response model.
    """

    error: str = Field(description="Error code")
    message: str = Field(description="Human-readable error message")
    details: Optional[dict] = Field(
        default=None,
        description="Additional error details"
    )
