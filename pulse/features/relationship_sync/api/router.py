"""
Relationship sync routes.

POST /sync runs email + calendar ingestion and rescoring for the caller.
POST /scores/recompute rescores without fetching.
GET /dashboard returns the follow-up view over the scored contacts.
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from pulse.auth.verify import auth_dependency
from pulse.features.relationship_sync.api.schemas import (
    DashboardResponse,
    RecomputeScoresResponse,
    SyncResponse,
)
from pulse.features.relationship_sync.domain.errors import (
    FORBIDDEN,
    UNAUTHORIZED,
    classify_sync_error,
)
from pulse.features.relationship_sync.services.dashboard_service import DashboardService
from pulse.features.relationship_sync.services.sync_service import SyncOrchestrator
from pulse.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["relationship-sync"])

STATUS_BY_CLASSIFICATION = {
    UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    FORBIDDEN: status.HTTP_403_FORBIDDEN,
}


def get_sync_orchestrator(request: Request) -> SyncOrchestrator:
    return request.app.state.sync_orchestrator


def get_dashboard_service(request: Request) -> DashboardService:
    return request.app.state.dashboard_service


def _http_error(error: Exception) -> HTTPException:
    status_code = STATUS_BY_CLASSIFICATION.get(
        classify_sync_error(error), status.HTTP_500_INTERNAL_SERVER_ERROR
    )
    return HTTPException(status_code=status_code, detail=str(error) or "Sync failed")


@router.post("/sync", response_model=SyncResponse)
async def run_sync(
    claims: dict = Depends(auth_dependency),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Ingest the caller's Gmail and Calendar activity, then rescore their contacts."""
    user_id = claims.get("sub")
    user_email = claims.get("email")
    if not user_id or not user_email:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        report = await orchestrator.sync(user_id, user_email)
    except Exception as e:
        logger.error("Sync failed", user_id=user_id, error=str(e), error_type=type(e).__name__)
        raise _http_error(e) from e

    return SyncResponse.from_report(report)


@router.post("/scores/recompute", response_model=RecomputeScoresResponse)
async def recompute_scores(
    claims: dict = Depends(auth_dependency),
    orchestrator: SyncOrchestrator = Depends(get_sync_orchestrator),
):
    """Recompute scores and risk labels for all of the caller's contacts."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        contacts_scored = await orchestrator.recompute_scores(user_id)
    except Exception as e:
        logger.error("Score recompute failed", user_id=user_id, error=str(e), error_type=type(e).__name__)
        raise _http_error(e) from e

    return RecomputeScoresResponse(contacts_scored=contacts_scored)


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    claims: dict = Depends(auth_dependency),
    dashboard_service: DashboardService = Depends(get_dashboard_service),
):
    """At-risk contacts, pending replies, next week's meetings and headline counts."""
    user_id = claims.get("sub")
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    try:
        dashboard = await dashboard_service.get_dashboard(user_id)
    except Exception as e:
        logger.error("Dashboard failed", user_id=user_id, error=str(e), error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal server error"
        ) from e

    return DashboardResponse.from_dashboard(dashboard)
