"""
Checkpoint store: source file name -> (byte offset, backup file).

The whole table is loaded once at startup and rewritten after every mutation,
so a restart resumes each file from its last saved offset. Writes go to a
temporary file that atomically replaces the state file.
"""

import asyncio
import json
import os
import uuid
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Set

import aiofiles
import aiofiles.os
import structlog
from pydantic import ValidationError

from ..models.backup_state import CheckpointTable, FileBackupState
from .exceptions import CheckpointNotFoundError, CheckpointPersistError
from .metrics import MetricsCollector

logger = structlog.get_logger(__name__)


class CheckpointStore:
    """
    JSON-file backed checkpoint table shared by all file pipelines.

    Every read-or-create and save goes through one asyncio lock, and the
    table is persisted before the call returns.
    """

    def __init__(self, state_path: Path, metrics: Optional[MetricsCollector] = None) -> None:
        self.state_path = Path(state_path)
        self.metrics = metrics
        self.state_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = asyncio.Lock()
        self._state: Dict[str, FileBackupState] = self._load()
        self._destinations: Set[str] = {entry.backup_file for entry in self._state.values()}

        logger.info(
            "Checkpoint store initialized",
            state_path=str(self.state_path),
            files_tracked=len(self._state),
        )

    def _load(self) -> Dict[str, FileBackupState]:
        """Load the table from disk; an unreadable table starts empty."""
        if not self.state_path.exists():
            return {}

        try:
            with open(self.state_path, "r", encoding="utf-8") as f:
                raw = f.read()
            if not raw.strip():
                return {}
            return CheckpointTable.validate_json(raw)
        except (OSError, ValueError, ValidationError) as e:
            # Forgets all progress: every file is re-processed from offset 0
            logger.error(
                "Failed loading state file, starting with empty state",
                state_path=str(self.state_path),
                error=str(e),
                error_type=type(e).__name__,
            )
            return {}

    async def get_checkpoint(self, source_name: str) -> FileBackupState:
        """
        Return the checkpoint for a source file, creating it on first sight.

        A new record starts at offset 0 with a fresh backup file name and is
        persisted before it is returned.
        """
        async with self._lock:
            entry = self._state.get(source_name)
            if entry is not None:
                return entry.model_copy()

            entry = FileBackupState(offset=0, backup_file=self._new_destination(source_name))
            self._state[source_name] = entry
            self._destinations.add(entry.backup_file)

            logger.info(
                "Tracking new source file",
                file=source_name,
                backup_file=entry.backup_file,
            )
            await self._persist_logged()
            return entry.model_copy()

    async def save_checkpoint(self, source_name: str, offset: int) -> None:
        """
        Store a new offset for a known source file and persist the table.

        Raises:
            CheckpointNotFoundError: get_checkpoint was never called for the file
        """
        if offset < 0:
            raise ValueError(f"Offset must be non-negative, got {offset}")

        async with self._lock:
            entry = self._state.get(source_name)
            if entry is None:
                raise CheckpointNotFoundError(source_name)

            entry.offset = offset
            logger.debug("Saving checkpoint", file=source_name, offset=offset)
            await self._persist_logged()

    def snapshot(self) -> Dict[str, FileBackupState]:
        """Copy of the in-memory table."""
        return {name: entry.model_copy() for name, entry in self._state.items()}

    def _new_destination(self, source_name: str) -> str:
        """Time-ordered, collision-resistant backup file name."""
        while True:
            stamp = datetime.now().strftime("%Y%m%d-%H%M%S-%f")
            candidate = f"{stamp}-{uuid.uuid4().hex[:8]}-{source_name}"
            if candidate not in self._destinations:
                return candidate

    async def _persist_logged(self) -> None:
        """Persist the table; failures are logged and the in-memory state kept."""
        try:
            await self._persist()
        except CheckpointPersistError as e:
            logger.error(
                "Failed writing state file",
                state_path=str(self.state_path),
                error=str(e),
                **e.details,
            )
            if self.metrics:
                self.metrics.record_checkpoint_persist_error()

    async def _persist(self) -> None:
        payload = json.dumps(
            {name: entry.model_dump() for name, entry in self._state.items()},
            indent=2,
        )
        tmp_path = self.state_path.with_name(self.state_path.name + ".tmp")

        try:
            self.state_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(payload)
                await f.flush()
                await asyncio.to_thread(os.fsync, f.fileno())
            await aiofiles.os.replace(tmp_path, self.state_path)
        except OSError as e:
            raise CheckpointPersistError(
                "Error writing checkpoint table",
                details={"cause": str(e), "error_type": type(e).__name__},
            ) from e
