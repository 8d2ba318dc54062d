"""
Relationship sync feature package.

This vertical slice keeps every layer of the sync flow co-located: domain
models and errors, the ingestion and scoring pipeline, repositories,
services, and the API router.
"""

# Re-export the primary building blocks for easy access.
from .api.router import router as sync_router  # noqa: F401
from .services.dashboard_service import DashboardService  # noqa: F401
from .services.sync_service import SyncOrchestrator  # noqa: F401
from .services.token_service import TokenService  # noqa: F401
