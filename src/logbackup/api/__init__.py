"""
API endpoints package.

Contains FastAPI routers for all service endpoints:
- /healthz, /readyz - Health checks
- /metrics - Prometheus metrics
- /v1/admin/* - Forced cycles, checkpoint table, worker status
"""
from .admin import router as admin_router
from .healthz import router as healthz_router
from .metrics import router as metrics_router

__all__ = ["admin_router", "healthz_router", "metrics_router"]
