"""
Background service that runs backup cycles on an interval.

Manages the worker lifecycle and exposes status for health checks and the
admin API.
"""

import asyncio
from typing import Any, Dict, Optional

import structlog

from .runner import BackupRunner, CycleResult

logger = structlog.get_logger(__name__)


class BackupWorkerService:
    """
    Background service that drives the backup runner.

    Features:
    - Automatic startup/shutdown
    - Periodic cycles until stopped
    - Cooperative stop: in-flight files finish their current line
    - On-demand cycles for the admin API
    """

    def __init__(
        self,
        runner: BackupRunner,
        interval_seconds: float = 15,
        shutdown_grace_seconds: float = 10,
    ) -> None:
        self.runner = runner
        self.interval = interval_seconds
        self.shutdown_grace = shutdown_grace_seconds
        self.last_cycle: Optional[CycleResult] = None
        self.cycles_completed = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._stop_event = asyncio.Event()
        self._cycle_lock = asyncio.Lock()
        self._running = False

        logger.info("Backup worker service initialized", interval_seconds=interval_seconds)

    async def start(self) -> None:
        """Start the worker loop."""
        if self._running:
            return

        self._stop_event = asyncio.Event()
        self._running = True
        self._task = asyncio.create_task(self._run_worker_loop())

        logger.info("Log backup worker started")

    async def stop(self) -> None:
        """Request a stop and wait for the current cycle to wind down."""
        if not self._running:
            return

        self._running = False
        self._stop_event.set()

        if self._task:
            try:
                await asyncio.wait_for(asyncio.shield(self._task), timeout=self.shutdown_grace)
            except asyncio.TimeoutError:
                logger.warning(
                    "Worker did not stop within grace period, cancelling",
                    grace_seconds=self.shutdown_grace,
                )
                self._task.cancel()
                try:
                    await self._task
                except asyncio.CancelledError:
                    pass
            self._task = None

        logger.info("Log backup worker stopped")

    async def _run_worker_loop(self) -> None:
        """Main worker loop."""
        while not self._stop_event.is_set():
            try:
                await self._run_cycle()
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    "Worker encountered an unexpected error",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True,
                )

            # Wait for next cycle, waking early on stop
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Log backup worker loop exiting", cycles_completed=self.cycles_completed)

    async def _run_cycle(self) -> CycleResult:
        async with self._cycle_lock:
            result = await self.runner.run_cycle(self._stop_event)
            self.last_cycle = result
            self.cycles_completed += 1
            return result

    async def force_cycle(self) -> Dict[str, Any]:
        """
        Run one backup cycle immediately.

        Returns:
            dict with cycle results
        """
        try:
            result = await self._run_cycle()
            return {
                "success": True,
                "files_seen": len(result.files),
                "files_processed": result.files_processed,
                "files_failed": result.files_failed,
                "lines_written": result.lines_written,
                "duration_ms": int(result.duration_seconds * 1000),
                "cancelled": result.cancelled,
            }
        except Exception as e:
            logger.error("Forced cycle failed", error=str(e))
            return {"success": False, "error": str(e)}

    def is_healthy(self) -> bool:
        """Check if the worker loop is running."""
        return self._running and self._task is not None and not self._task.done()

    def status(self) -> Dict[str, Any]:
        """Worker status summary."""
        last = self.last_cycle
        return {
            "running": self.is_healthy(),
            "interval_seconds": self.interval,
            "cycles_completed": self.cycles_completed,
            "last_cycle": None if last is None else {
                "started_at": last.started_at,
                "duration_ms": int(last.duration_seconds * 1000),
                "files_seen": len(last.files),
                "files_processed": last.files_processed,
                "files_failed": last.files_failed,
                "lines_written": last.lines_written,
                "cancelled": last.cancelled,
                "failed_files": [
                    {"file": r.file, "error": r.error}
                    for r in last.files if r.error is not None
                ],
            },
        }
