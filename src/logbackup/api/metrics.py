"""
Prometheus metrics endpoint.

Exposes metrics in Prometheus text format for scraping.
"""

import structlog
from fastapi import APIRouter, Request, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

logger = structlog.get_logger(__name__)

router = APIRouter()


@router.get(
    "/metrics",
    summary="Prometheus metrics",
    description="""
    Prometheus metrics endpoint in standard text format.

    **Key Metrics:**
    - backup_cycles_total{outcome} - Backup cycles run
    - backup_files_total{status} - Per-file outcomes
    - backup_lines_written_total - Sanitized lines appended
    - backup_lines_dropped_total{reason} - Lines filtered, blank or failed
    - backup_truncations_total - Truncated or rotated sources
    - backup_checkpoint_persist_errors_total - Failed checkpoint writes
    """,
)
async def get_metrics(request: Request) -> Response:
    """
    Prometheus metrics endpoint.

    Returns metrics in Prometheus text format for scraping.
    """
    metrics_collector = getattr(request.app.state, 'metrics', None)

    if not metrics_collector:
        logger.warning("Metrics collector not initialized")
        return Response(
            content="# Metrics collector not initialized\n",
            media_type=CONTENT_TYPE_LATEST,
        )

    try:
        metrics_data = generate_latest(metrics_collector.registry)
    except Exception as e:
        logger.error(
            "Failed to generate metrics",
            error=str(e),
            error_type=type(e).__name__,
            exc_info=True,
        )
        error_metrics = f"""# HELP logbackup_metrics_error Metrics generation errors
# TYPE logbackup_metrics_error counter
logbackup_metrics_error{{error="{type(e).__name__}"}} 1
"""
        return Response(
            content=error_metrics,
            media_type=CONTENT_TYPE_LATEST,
        )

    logger.debug("Metrics scraped successfully", size_bytes=len(metrics_data))

    return Response(
        content=metrics_data,
        media_type=CONTENT_TYPE_LATEST,
    )
