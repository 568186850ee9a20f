"""
Admin API endpoints for LogBackup.

Provides on-demand backup cycles and checkpoint inspection.
"""

from typing import Any, Dict

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..core.auth import authenticate_admin_token
from ..models import CheckpointEntry, CheckpointListResponse, CycleResponse, ErrorResponse

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.post(
    "/v1/admin/cycle",
    response_model=CycleResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized - admin token required"},
        503: {"description": "Worker service not available"},
    },
    summary="Run a backup cycle now",
    description="""
    Run one backup cycle immediately instead of waiting for the interval.

    The cycle is serialized with the background loop, so it never overlaps
    a scheduled cycle.
    """,
)
async def run_backup_cycle(
    request: Request,
    admin_token: str = Depends(authenticate_admin_token)
) -> CycleResponse:
    """Force an immediate backup cycle."""
    logger.info("Manual backup cycle requested", admin_token=admin_token[:8] + "...")

    worker_service = getattr(request.app.state, 'worker_service', None)
    if not worker_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker service not available"
        )

    if not worker_service.is_healthy():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Worker service is not running"
        )

    result = await worker_service.force_cycle()
    if not result["success"]:
        logger.warning("Manual backup cycle failed", error=result.get("error", "Unknown error"))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Backup cycle failed: {result.get('error', 'Unknown error')}"
        )

    logger.info(
        "Manual backup cycle completed",
        files_processed=result["files_processed"],
        lines_written=result["lines_written"],
    )

    return CycleResponse(
        message="Backup cycle completed",
        files_seen=result["files_seen"],
        files_processed=result["files_processed"],
        files_failed=result["files_failed"],
        lines_written=result["lines_written"],
        duration_ms=result["duration_ms"],
        cancelled=result["cancelled"],
    )


@router.get("/v1/admin/checkpoints", response_model=CheckpointListResponse)
async def list_checkpoints(
    request: Request,
    admin_token: str = Depends(authenticate_admin_token)
) -> CheckpointListResponse:
    """Return the current checkpoint table."""
    store = getattr(request.app.state, 'checkpoint_store', None)
    if not store:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Checkpoint store not available"
        )

    entries = [
        CheckpointEntry(file=name, offset=state.offset, backup_file=state.backup_file)
        for name, state in sorted(store.snapshot().items())
    ]
    return CheckpointListResponse(checkpoints=entries, total=len(entries))


@router.get("/v1/admin/status")
async def get_admin_status(
    request: Request,
    admin_token: str = Depends(authenticate_admin_token)
) -> Dict[str, Any]:
    """
    Get admin status information.

    Returns worker status and the outcome of the last cycle.
    """
    logger.debug("Admin status requested", admin_token=admin_token[:8] + "...")

    worker_service = getattr(request.app.state, 'worker_service', None)

    return {
        "worker_service": worker_service.status() if worker_service else {"running": False},
        "metrics": {
            "available": hasattr(request.app.state, 'metrics')
        },
    }
