"""
Main FastAPI application entry point.

Sets up the backup worker, its collaborators and the HTTP surface
(health, metrics, admin) with lifecycle events.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import CollectorRegistry

from src.logbackup.api import admin_router, healthz_router, metrics_router
from src.logbackup.config import Settings, get_settings
from src.logbackup.core.checkpoint import CheckpointStore
from src.logbackup.core.exceptions import LogBackupException
from src.logbackup.core.health import HealthChecker
from src.logbackup.core.masking import MaskingEngine
from src.logbackup.core.metrics import MetricsCollector
from src.logbackup.core.pipeline import FilePipeline
from src.logbackup.core.runner import BackupRunner
from src.logbackup.core.sink import FileLogSink
from src.logbackup.core.source import FileLogSource
from src.logbackup.core.worker_service import BackupWorkerService


def configure_logging(log_level: str = "INFO") -> None:
    """Configure structured logging for the application."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )

    # Silence the verbose watchfiles logger
    logging.getLogger("watchfiles").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def create_lifespan_handler(settings: Settings) -> Any:
    """Create a lifespan handler with access to settings."""
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """
        FastAPI lifespan context manager.

        Builds the backup components, starts the worker loop and stops it
        cooperatively on shutdown.
        """
        logger = structlog.get_logger(__name__)
        logger.info("Starting LogBackup service", version=app.version)

        metrics_collector = MetricsCollector(registry=CollectorRegistry())
        app.state.metrics = metrics_collector

        source = FileLogSource(settings.paths.input_path)
        sink = FileLogSink(settings.paths.output_path)
        checkpoint_store = CheckpointStore(settings.paths.state_path, metrics=metrics_collector)
        app.state.checkpoint_store = checkpoint_store

        pipeline = FilePipeline(
            source=source,
            sink=sink,
            store=checkpoint_store,
            engine=MaskingEngine(settings.processing),
            settings=settings.processing,
            metrics=metrics_collector,
        )
        runner = BackupRunner(
            source=source,
            pipeline=pipeline,
            max_parallel_files=settings.worker.max_parallel_files,
            metrics=metrics_collector,
        )

        worker_service = BackupWorkerService(
            runner,
            interval_seconds=settings.worker.interval_seconds,
            shutdown_grace_seconds=settings.worker.shutdown_grace_seconds,
        )
        app.state.worker_service = worker_service
        await worker_service.start()

        app.state.health_checker = HealthChecker(settings, worker_service)

        try:
            logger.info("LogBackup service started successfully")
            yield
        finally:
            logger.info("Shutting down LogBackup service")
            await worker_service.stop()
            logger.info("LogBackup service shutdown complete")

    return lifespan


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    This factory function ensures all configuration is applied
    whether running via uvicorn or direct execution.
    """
    if settings is None:
        settings = get_settings()

    configure_logging(settings.log_level)

    app = FastAPI(
        title="LogBackup",
        description="Incremental, sanitized backup of application log files",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=create_lifespan_handler(settings),
    )
    app.state.settings = settings

    @app.exception_handler(LogBackupException)
    async def logbackup_exception_handler(request: Request, exc: LogBackupException) -> JSONResponse:
        """Handle custom LogBackup exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "LogBackup exception occurred",
            error=str(exc),
            status_code=exc.status_code,
            path=request.url.path,
            method=request.method,
        )

        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.error_code,
                "message": str(exc),
                "details": exc.details,
            },
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger = structlog.get_logger(__name__)
        logger.error(
            "Unexpected exception occurred",
            error=str(exc),
            error_type=type(exc).__name__,
            path=request.url.path,
            method=request.method,
            exc_info=True,
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    app.include_router(admin_router, tags=["admin"])
    app.include_router(metrics_router, tags=["metrics"])
    app.include_router(healthz_router, tags=["health"])

    @app.get("/", include_in_schema=False)
    async def root() -> Dict[str, str]:
        """Root endpoint with service information."""
        return {
            "service": "LogBackup",
            "version": app.version,
            "description": "Incremental, sanitized backup of application log files",
            "docs": "/docs",
        }

    return app


# Create the app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "src.logbackup.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=settings.debug,
    )
