"""
Monitoring for DXTREE.

- Health check: DB connectivity
- Metrics: table and prediction counts, fallback rate, most predicted diseases
"""

import logging
from typing import Any

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from backend.database import engine
from backend.models_db import PredictionLogModel, TrainingTableModel

logger = logging.getLogger(__name__)


def check_db() -> tuple[bool, str]:
    """Check database connectivity. Returns (ok, message)."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, "ok"
    except Exception as e:
        return False, str(e)


def get_health() -> dict[str, Any]:
    """Return health status for /api/health."""
    db_ok, db_msg = check_db()
    return {
        "status": "healthy" if db_ok else "unhealthy",
        "checks": {
            "database": {"status": "up" if db_ok else "down", "message": db_msg},
        },
    }


def get_metrics(db: Session) -> dict[str, Any]:
    """Aggregate metrics from DB for /api/metrics."""
    try:
        tables_total = db.query(func.count(TrainingTableModel.id)).scalar() or 0
        predictions_total = db.query(func.count(PredictionLogModel.id)).scalar() or 0
        with_fallback = (
            db.query(func.count(PredictionLogModel.id))
            .filter(PredictionLogModel.fallbacks > 0)
            .scalar() or 0
        )
        top = (
            db.query(PredictionLogModel.category, func.count(PredictionLogModel.id).label("n"))
            .group_by(PredictionLogModel.category)
            .order_by(func.count(PredictionLogModel.id).desc())
            .limit(5)
            .all()
        )
        fallback_rate = (with_fallback / predictions_total * 100) if predictions_total else None
        return {
            "tables_total": tables_total,
            "predictions_total": predictions_total,
            "predictions_with_fallback": with_fallback,
            "fallback_rate_percent": round(fallback_rate, 1) if fallback_rate is not None else None,
            "top_categories": [{"category": c, "count": n} for c, n in top],
        }
    except Exception as e:
        logger.exception("get_metrics failed: %s", e)
        return {
            "tables_total": 0,
            "predictions_total": 0,
            "predictions_with_fallback": 0,
            "fallback_rate_percent": None,
            "top_categories": [],
            "error": str(e),
        }
