"""
Multi-file backup orchestrator.

Runs the single-file pipeline for every file visible at the start of a
cycle, with a bounded number of files in flight. A failure in one file is
logged and recorded; it never stops its siblings or the cycle.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import List, Optional, Protocol

import structlog

from ..models.log_file import LogFile
from .metrics import MetricsCollector
from .pipeline import FileResult, FileStatus
from .source import FileLogSource

logger = structlog.get_logger(__name__)


class FileProcessor(Protocol):
    async def process_file(
        self, file: LogFile, stop_event: Optional[asyncio.Event] = None
    ) -> FileResult: ...


@dataclass
class CycleResult:
    """Result of one backup cycle."""
    started_at: float
    duration_seconds: float = 0.0
    cancelled: bool = False
    files: List[FileResult] = field(default_factory=list)

    @property
    def files_processed(self) -> int:
        return sum(1 for r in self.files if r.status in (FileStatus.PROCESSED, FileStatus.EMPTY))

    @property
    def files_failed(self) -> int:
        return sum(1 for r in self.files if r.status == FileStatus.FAILED)

    @property
    def lines_written(self) -> int:
        return sum(r.lines_written for r in self.files)


class BackupRunner:
    """
    Processes all currently visible log files with bounded concurrency.

    Features:
    - One directory snapshot per cycle
    - Semaphore-bounded parallelism across files
    - Per-file failure isolation
    - Cooperative stop: no new files start once the stop event is set
    """

    def __init__(
        self,
        source: FileLogSource,
        pipeline: FileProcessor,
        max_parallel_files: int = 4,
        metrics: Optional[MetricsCollector] = None,
    ) -> None:
        if max_parallel_files < 1:
            raise ValueError(f"max_parallel_files must be at least 1, got {max_parallel_files}")

        self.source = source
        self.pipeline = pipeline
        self.max_parallel_files = max_parallel_files
        self.metrics = metrics

        logger.info("Backup runner initialized", max_parallel_files=max_parallel_files)

    async def run_cycle(self, stop_event: Optional[asyncio.Event] = None) -> CycleResult:
        """
        Run one backup pass over every file in the input directory.

        Never raises for per-file or listing errors; those are logged and
        reflected in the returned CycleResult.
        """
        started = time.time()
        result = CycleResult(started_at=started)

        try:
            files = self.source.list_available()
        except Exception as e:
            logger.error(
                "Failed to enumerate source files",
                error=str(e),
                error_type=type(e).__name__,
            )
            files = []

        logger.debug("Starting backup cycle", files_count=len(files))

        semaphore = asyncio.Semaphore(self.max_parallel_files)
        tasks = [
            self._run_one(file, semaphore, stop_event)
            for file in files
        ]
        result.files = list(await asyncio.gather(*tasks))

        result.cancelled = stop_event is not None and stop_event.is_set()
        result.duration_seconds = time.time() - started

        if self.metrics:
            self.metrics.record_cycle(result.duration_seconds, cancelled=result.cancelled)

        logger.info(
            "Backup cycle completed",
            files_seen=len(files),
            files_processed=result.files_processed,
            files_failed=result.files_failed,
            lines_written=result.lines_written,
            cancelled=result.cancelled,
            duration_ms=int(result.duration_seconds * 1000),
        )
        return result

    async def _run_one(
        self,
        file: LogFile,
        semaphore: asyncio.Semaphore,
        stop_event: Optional[asyncio.Event],
    ) -> FileResult:
        async with semaphore:
            if stop_event is not None and stop_event.is_set():
                file_result = FileResult(file=file.name, status=FileStatus.NOT_STARTED)
                self._record(file_result)
                return file_result

            if self.metrics:
                self.metrics.active_pipelines.inc()
            try:
                file_result = await self.pipeline.process_file(file, stop_event)
            except Exception as e:
                logger.error(
                    "Error processing file, skipping file",
                    file=file.name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )
                file_result = FileResult(
                    file=file.name,
                    status=FileStatus.FAILED,
                    error=f"{type(e).__name__}: {e}",
                )
            finally:
                if self.metrics:
                    self.metrics.active_pipelines.dec()

            self._record(file_result)
            return file_result

    def _record(self, file_result: FileResult) -> None:
        if self.metrics:
            self.metrics.record_file(file_result.status.value)
