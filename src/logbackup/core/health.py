"""
Health checker for the backup worker's dependencies.

Checks:
- Input directory readable
- Backup and state directories writable
- Disk space availability
- Background worker status
"""

import asyncio
import os
import shutil
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import structlog

from ..config import Settings
from .worker_service import BackupWorkerService

logger = structlog.get_logger(__name__)


@dataclass
class HealthCheck:
    """Individual health check result."""
    name: str
    status: str  # "healthy", "unhealthy"
    message: str
    details: Dict[str, Any]
    last_check: float


@dataclass
class HealthStatus:
    """Overall health status."""
    is_healthy: bool
    checks: Dict[str, HealthCheck]
    failed_checks: List[str]
    timestamp: float


class HealthChecker:
    """Readiness checks for LogBackup."""

    def __init__(self, settings: Settings, worker_service: Optional[BackupWorkerService] = None) -> None:
        self.settings = settings
        self.worker_service = worker_service
        logger.info("Health Checker initialized")

    async def check_all(self) -> HealthStatus:
        """Perform all health checks and return overall status."""
        checks = {}
        failed_checks = []

        check_results = await asyncio.gather(
            asyncio.to_thread(self._check_input_directory),
            asyncio.to_thread(self._check_writable, "output", self.settings.paths.output_path),
            asyncio.to_thread(self._check_writable, "state", self.settings.paths.state_path.parent),
            asyncio.to_thread(self._check_disk_space),
            asyncio.to_thread(self._check_worker_service),
            return_exceptions=True
        )

        check_names = ["input", "output", "state", "disk", "worker"]
        for name, result in zip(check_names, check_results):
            if isinstance(result, BaseException):
                checks[name] = HealthCheck(
                    name=name,
                    status="unhealthy",
                    message=f"Check failed: {str(result)}",
                    details={"error": str(result), "error_type": type(result).__name__},
                    last_check=time.time()
                )
                failed_checks.append(name)
            else:
                checks[name] = result
                if result.status != "healthy":
                    failed_checks.append(name)

        return HealthStatus(
            is_healthy=not failed_checks,
            checks=checks,
            failed_checks=failed_checks,
            timestamp=time.time()
        )

    def _check_input_directory(self) -> HealthCheck:
        input_path = self.settings.paths.input_path

        if not input_path.is_dir():
            return HealthCheck(
                name="input",
                status="unhealthy",
                message="Input directory does not exist",
                details={"path": str(input_path)},
                last_check=time.time()
            )

        if not os.access(input_path, os.R_OK | os.X_OK):
            return HealthCheck(
                name="input",
                status="unhealthy",
                message="Input directory not readable",
                details={"path": str(input_path)},
                last_check=time.time()
            )

        return HealthCheck(
            name="input",
            status="healthy",
            message="Input directory readable",
            details={"path": str(input_path)},
            last_check=time.time()
        )

    def _check_writable(self, name: str, directory: Path) -> HealthCheck:
        """Check a directory exists and accepts writes."""
        if not directory.is_dir():
            return HealthCheck(
                name=name,
                status="unhealthy",
                message=f"{name.capitalize()} directory does not exist",
                details={"path": str(directory)},
                last_check=time.time()
            )

        test_file = directory / ".health_check"
        try:
            test_file.write_text("test")
            test_file.unlink()
        except OSError as e:
            return HealthCheck(
                name=name,
                status="unhealthy",
                message=f"{name.capitalize()} directory not writable: {str(e)}",
                details={"path": str(directory), "error": str(e)},
                last_check=time.time()
            )

        return HealthCheck(
            name=name,
            status="healthy",
            message=f"{name.capitalize()} directory writable",
            details={"path": str(directory), "writable": True},
            last_check=time.time()
        )

    def _check_disk_space(self) -> HealthCheck:
        """Check the backup volume has sufficient free space."""
        output_path = self.settings.paths.output_path

        try:
            total, used, free = shutil.disk_usage(output_path)
        except OSError as e:
            return HealthCheck(
                name="disk",
                status="unhealthy",
                message=f"Disk check failed: {str(e)}",
                details={"error": str(e)},
                last_check=time.time()
            )

        free_ratio = free / total if total else 0.0
        free_percentage = free_ratio * 100
        min_free_ratio = self.settings.disk_free_min_ratio

        if free_ratio >= min_free_ratio:
            status = "healthy"
            message = f"Disk space OK: {free_percentage:.1f}% free"
        else:
            status = "unhealthy"
            message = f"Low disk space: {free_percentage:.1f}% free (min: {min_free_ratio * 100:.1f}%)"

        return HealthCheck(
            name="disk",
            status=status,
            message=message,
            details={
                "path": str(output_path),
                "total_bytes": total,
                "used_bytes": used,
                "free_bytes": free,
                "free_percentage": round(free_percentage, 1),
            },
            last_check=time.time()
        )

    def _check_worker_service(self) -> HealthCheck:
        """Check the backup worker loop is running."""
        if not self.worker_service:
            return HealthCheck(
                name="worker",
                status="unhealthy",
                message="Worker service not available",
                details={},
                last_check=time.time()
            )

        if self.worker_service.is_healthy():
            return HealthCheck(
                name="worker",
                status="healthy",
                message="Worker service is running",
                details={"cycles_completed": self.worker_service.cycles_completed},
                last_check=time.time()
            )

        return HealthCheck(
            name="worker",
            status="unhealthy",
            message="Worker service is not running",
            details={"cycles_completed": self.worker_service.cycles_completed},
            last_check=time.time()
        )
