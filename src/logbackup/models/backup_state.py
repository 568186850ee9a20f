"""
Persisted processing state for a source log file.
"""

from typing import Dict

from pydantic import BaseModel, Field, TypeAdapter


class FileBackupState(BaseModel):
    """
    Checkpoint record for one source file.

    offset is the byte position already consumed; backup_file is the backup
    artifact the source is appended to and never changes once assigned.
    """

    offset: int = Field(default=0, ge=0, description="Last processed byte offset")
    backup_file: str = Field(min_length=1, description="Backup file name for this source")


CheckpointTable = TypeAdapter(Dict[str, FileBackupState])
