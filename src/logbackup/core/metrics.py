"""
Prometheus metrics collection.

In-memory counters for backup cycles, per-file outcomes and line
throughput; Prometheus handles storage.
"""

import time
from typing import Optional

import structlog
from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram, Info

logger = structlog.get_logger(__name__)


class MetricsCollector:
    """
    Centralized metrics collection for LogBackup.

    Collectors register on the default registry unless a dedicated one is
    passed in.
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry if registry is not None else REGISTRY

        # Service info
        self.service_info = Info(
            "logbackup_service",
            "LogBackup service information",
            registry=self.registry,
        )
        self.service_info.info({
            "version": "0.1.0",
            "service": "logbackup",
        })

        # Cycle metrics
        self.cycles_total = Counter(
            "backup_cycles_total",
            "Total backup cycles run",
            ["outcome"],
            registry=self.registry,
        )

        self.cycle_duration = Histogram(
            "backup_cycle_duration_seconds",
            "Backup cycle duration in seconds",
            buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry,
        )

        self.files_total = Counter(
            "backup_files_total",
            "Per-file pipeline runs by resulting status",
            ["status"],
            registry=self.registry,
        )

        self.active_pipelines = Gauge(
            "backup_active_pipelines",
            "Number of file pipelines currently running",
            registry=self.registry,
        )

        # Line metrics
        self.lines_written_total = Counter(
            "backup_lines_written_total",
            "Total sanitized lines appended to backup files",
            registry=self.registry,
        )

        self.lines_dropped_total = Counter(
            "backup_lines_dropped_total",
            "Total lines not written to backup files",
            ["reason"],
            registry=self.registry,
        )

        self.bytes_read_total = Counter(
            "backup_bytes_read_total",
            "Total bytes consumed from source files",
            registry=self.registry,
        )

        # State metrics
        self.truncations_total = Counter(
            "backup_truncations_total",
            "Source files detected as truncated or rotated",
            registry=self.registry,
        )

        self.checkpoint_persist_errors_total = Counter(
            "backup_checkpoint_persist_errors_total",
            "Failed writes of the checkpoint table",
            registry=self.registry,
        )

        self.uptime_seconds = Gauge(
            "uptime_seconds",
            "Service uptime in seconds",
            registry=self.registry,
        )

        self._start_time = time.time()

    def record_cycle(self, duration_seconds: float, cancelled: bool = False) -> None:
        """Record a completed backup cycle."""
        self.cycles_total.labels(outcome="cancelled" if cancelled else "completed").inc()
        self.cycle_duration.observe(duration_seconds)
        self.uptime_seconds.set(time.time() - self._start_time)

    def record_file(self, status: str) -> None:
        """Record the outcome of one file pipeline run."""
        self.files_total.labels(status=status).inc()

    def record_lines(
        self,
        written: int,
        bytes_read: int,
        blank: int = 0,
        dropped: int = 0,
        failed: int = 0,
    ) -> None:
        """Record line throughput for one file pass."""
        self.lines_written_total.inc(written)
        self.bytes_read_total.inc(bytes_read)

        if blank:
            self.lines_dropped_total.labels(reason="blank").inc(blank)
        if dropped:
            self.lines_dropped_total.labels(reason="filtered").inc(dropped)
        if failed:
            self.lines_dropped_total.labels(reason="error").inc(failed)

    def record_truncation(self) -> None:
        self.truncations_total.inc()

    def record_checkpoint_persist_error(self) -> None:
        self.checkpoint_persist_errors_total.inc()
