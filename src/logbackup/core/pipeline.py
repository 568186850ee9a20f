"""
Single-file backup pipeline.

For one source file per cycle:
1. Read-or-create the checkpoint (offset + backup file)
2. Decide: empty file, truncation reset, nothing new, or read
3. Read new lines from the stored offset, sanitize each through the
   masking engine and append survivors to the backup file. An unterminated
   last line is left for the next pass, in case the writer is mid-append
4. Save the final read position as the new offset

Bad lines are dropped without stopping the pass. Backup write failures
propagate so the offset is not advanced past lines that were never written.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import structlog

from ..config import ProcessingSettings
from ..models.log_file import LogFile
from .checkpoint import CheckpointStore
from .exceptions import SinkWriteError
from .masking import MaskingEngine
from .metrics import MetricsCollector
from .sink import FileLogSink
from .source import FileLogSource

logger = structlog.get_logger(__name__)


class FileStatus(str, Enum):
    """Outcome of one file pipeline run."""

    EMPTY = "empty"
    UNCHANGED = "unchanged"
    PROCESSED = "processed"
    CANCELLED = "cancelled"
    FAILED = "failed"
    NOT_STARTED = "not_started"


@dataclass
class FileResult:
    """Result of processing one source file."""
    file: str
    status: FileStatus
    offset_before: int = 0
    offset_after: int = 0
    truncated: bool = False
    lines_read: int = 0
    lines_written: int = 0
    lines_blank: int = 0
    lines_dropped: int = 0
    lines_failed: int = 0
    bytes_read: int = 0
    error: Optional[str] = None
    tail_held: bool = False


class FilePipeline:
    """
    Incremental, resumable backup of a single log file.

    Lines inside a file are handled strictly in order; the checkpoint never
    moves past a line that has not been appended to the backup file.
    """

    def __init__(
        self,
        source: FileLogSource,
        sink: FileLogSink,
        store: CheckpointStore,
        engine: MaskingEngine,
        settings: ProcessingSettings,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        self.source = source
        self.sink = sink
        self.store = store
        self.engine = engine
        self.metrics = metrics
        self.checkpoint_per_line = settings.checkpoint_per_line
        self._held_tails: Dict[str, int] = {}

        logger.info(
            "File pipeline initialized",
            checkpoint_per_line=self.checkpoint_per_line,
            has_metrics=metrics is not None,
        )

    async def process_file(
        self,
        file: LogFile,
        stop_event: Optional[asyncio.Event] = None,
    ) -> FileResult:
        """
        Back up the new content of one source file.

        Args:
            file: Name and current length of the source file
            stop_event: Checked before every line; once set, reading stops and
                the lines consumed so far are checkpointed

        Raises:
            SinkWriteError: the backup file could not be written
            SourceReadError: the source file could not be opened
        """
        state = await self.store.get_checkpoint(file.name)
        offset = state.offset
        result = FileResult(
            file=file.name,
            status=FileStatus.PROCESSED,
            offset_before=offset,
            offset_after=offset,
        )

        # Empty source still gets a backup file
        if file.length == 0:
            await self.sink.append(state.backup_file, "")
            await self.store.save_checkpoint(file.name, 0)
            result.status = FileStatus.EMPTY
            result.offset_after = 0
            return result

        if file.length < offset:
            logger.warning(
                "File truncated, resetting offset",
                file=file.name,
                length=file.length,
                offset=offset,
            )
            if self.metrics:
                self.metrics.record_truncation()
            result.truncated = True
            offset = 0

        if file.length == offset:
            result.status = FileStatus.UNCHANGED
            return result

        logger.debug(
            "Reading new data",
            file=file.name,
            offset=offset,
            length=file.length,
            backup_file=state.backup_file,
        )

        try:
            position = await self._read_lines(file, offset, state.backup_file, result, stop_event)
        finally:
            if self.metrics:
                self.metrics.record_lines(
                    written=result.lines_written,
                    bytes_read=result.bytes_read,
                    blank=result.lines_blank,
                    dropped=result.lines_dropped,
                    failed=result.lines_failed,
                )

        if not self.checkpoint_per_line or result.lines_read == 0:
            await self.store.save_checkpoint(file.name, position)
        result.offset_after = position

        logger.info(
            "File processed",
            file=file.name,
            status=result.status.value,
            offset=position,
            lines_read=result.lines_read,
            lines_written=result.lines_written,
            lines_dropped=result.lines_dropped + result.lines_blank,
            lines_failed=result.lines_failed,
        )
        return result

    async def _read_lines(
        self,
        file: LogFile,
        offset: int,
        backup_file: str,
        result: FileResult,
        stop_event: Optional[asyncio.Event],
    ) -> int:
        """Sequential read loop; returns the final read position."""
        position = offset

        async with self.source.open_for_reading_from(file, offset) as stream:
            while True:
                if stop_event is not None and stop_event.is_set():
                    result.status = FileStatus.CANCELLED
                    logger.info("Stop requested, ending file pass", file=file.name, offset=position)
                    break

                raw = await stream.readline()
                if not raw:
                    break

                if not raw.endswith(b"\n"):
                    if self._hold_tail(file.name, position + len(raw)):
                        result.tail_held = True
                        break
                else:
                    self._held_tails.pop(file.name, None)

                line_start = position
                position += len(raw)
                result.bytes_read += len(raw)
                result.lines_read += 1

                await self._handle_line(raw, line_start, backup_file, result)

                if self.checkpoint_per_line:
                    await self.store.save_checkpoint(file.name, position)
                    result.offset_after = position

        return position

    def _hold_tail(self, name: str, tail_end: int) -> bool:
        """
        Decide whether an unterminated last line is left for a later pass.

        The tail is held once. If the file has not grown by the next pass the
        writer is taken to be done and the tail is consumed as a line.
        """
        if self._held_tails.get(name) == tail_end:
            del self._held_tails[name]
            return False

        self._held_tails[name] = tail_end
        logger.debug("Holding unterminated last line", file=name, tail_end=tail_end)
        return True

    async def _handle_line(self, raw: bytes, line_start: int, backup_file: str, result: FileResult) -> None:
        text = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if line_start == 0:
            text = text.lstrip("\ufeff")

        if not text.strip():
            result.lines_blank += 1
            return

        try:
            processed = self.engine.process(text)
            if processed is None:
                result.lines_dropped += 1
                return

            await self.sink.append(backup_file, processed + "\n")
            result.lines_written += 1

        except SinkWriteError:
            raise
        except Exception as e:
            # A bad line never stops the rest of the file
            result.lines_failed += 1
            logger.debug(
                "Skipping line that failed processing",
                file=result.file,
                offset=line_start,
                error=str(e),
                error_type=type(e).__name__,
            )
