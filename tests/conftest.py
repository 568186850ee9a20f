"""
Pytest configuration and shared fixtures.

Contains common test fixtures and setup for all test modules.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, Generator, List

import pytest
from fastapi.testclient import TestClient
from prometheus_client import CollectorRegistry

from src.logbackup.config import (
    MaskRule,
    PathSettings,
    ProcessingSettings,
    SecuritySettings,
    Settings,
    WorkerSettings,
)
from src.logbackup.core.checkpoint import CheckpointStore
from src.logbackup.core.masking import MaskingEngine
from src.logbackup.core.metrics import MetricsCollector
from src.logbackup.core.pipeline import FilePipeline
from src.logbackup.core.sink import FileLogSink
from src.logbackup.core.source import FileLogSource
from src.logbackup.models.log_file import LogFile

ADMIN_TOKEN = "test_admin_token_123456789abc"


@pytest.fixture
def input_dir(tmp_path: Path) -> Path:
    path = tmp_path / "input"
    path.mkdir()
    return path


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    return tmp_path / "backup"


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    return tmp_path / "state" / "offsets.json"


@pytest.fixture
def processing_settings() -> ProcessingSettings:
    """Processing rules used across pipeline and engine tests."""
    return ProcessingSettings(
        full_mask=["password", "token"],
        partial_mask={
            "card": MaskRule(visible_start=2, visible_end=2),
            "email": MaskRule(visible_start=1, visible_end=4),
        },
        skip_if_contains=["healthcheck"],
        skip_fields=["internal"],
        log_level_field="level",
        log_level_mappings={"warning": "WARN", "err": "ERROR", "info": "INFO"},
    )


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector(registry=CollectorRegistry())


@pytest.fixture
def store(state_file: Path, metrics: MetricsCollector) -> CheckpointStore:
    return CheckpointStore(state_file, metrics=metrics)


@pytest.fixture
def pipeline(
    input_dir: Path,
    output_dir: Path,
    store: CheckpointStore,
    processing_settings: ProcessingSettings,
    metrics: MetricsCollector,
) -> FilePipeline:
    return FilePipeline(
        source=FileLogSource(input_dir),
        sink=FileLogSink(output_dir),
        store=store,
        engine=MaskingEngine(processing_settings),
        settings=processing_settings,
        metrics=metrics,
    )


@pytest.fixture
def write_log(input_dir: Path) -> Callable[..., LogFile]:
    """Append records (dicts become JSON lines, strings are written raw)."""

    def _write(name: str, *records: Any, mode: str = "a") -> LogFile:
        path = input_dir / name
        with open(path, mode, encoding="utf-8", newline="") as f:
            for record in records:
                line = record if isinstance(record, str) else json.dumps(record)
                f.write(line + "\n")
        return LogFile(name=name, length=path.stat().st_size)

    return _write


@pytest.fixture
def read_backup(output_dir: Path) -> Callable[[str], List[Dict[str, Any]]]:
    """Read a backup file back as a list of decoded records."""

    def _read(backup_file: str) -> List[Dict[str, Any]]:
        path = output_dir / backup_file
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines() if line]

    return _read


@pytest.fixture
def app_settings(input_dir: Path, output_dir: Path, state_file: Path) -> Settings:
    """Settings for API tests; the interval keeps the loop to one cycle."""
    state_file.parent.mkdir(parents=True, exist_ok=True)
    return Settings(
        log_level="DEBUG",
        disk_free_min_ratio=0.0,
        paths=PathSettings(input_path=input_dir, output_path=output_dir, state_path=state_file),
        worker=WorkerSettings(interval_seconds=3600, max_parallel_files=2, shutdown_grace_seconds=5),
        processing=ProcessingSettings(full_mask=["password"]),
        security=SecuritySettings(admin_token=ADMIN_TOKEN),
    )


@pytest.fixture
def test_client(app_settings: Settings) -> Generator[TestClient, None, None]:
    """FastAPI test client running the full service lifespan."""
    from src.logbackup.main import create_app

    with TestClient(create_app(app_settings)) as client:
        yield client


@pytest.fixture
def admin_headers() -> Dict[str, str]:
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}

