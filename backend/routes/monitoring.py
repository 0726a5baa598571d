"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from backend.database import get_db
from backend.services.monitoring_service import get_health, get_metrics

router = APIRouter(tags=["monitoring"])


@router.get("/health", summary="Health check")
def health():
    """
    Health check for load balancers and orchestration.
    Returns database status. Does not require authentication.
    """
    return get_health()


@router.get("/metrics", summary="Usage metrics")
def metrics(db: Session = Depends(get_db)):
    """Aggregate metrics: stored tables, predictions made, fallback rate, most predicted diseases."""
    return get_metrics(db)
