from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from api.dependencies import get_db
import logging

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check(request: Request, db: Session = Depends(get_db)):
    """
    Health check endpoint for monitoring and load balancers.
    Reports database connectivity and whether the check scheduler is running.
    """
    monitoring_service = getattr(request.app.state, "monitoring_service", None)
    scheduler_status = "running" if monitoring_service and monitoring_service.running else "stopped"
    active_jobs = len(monitoring_service.get_all_active_jobs()) if monitoring_service else 0

    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.error(f"Health check failed: {e}")
        return {
            "status": "unhealthy",
            "database": "disconnected",
            "scheduler": scheduler_status,
            "error": str(e),
        }

    return {
        "status": "healthy",
        "database": "connected",
        "scheduler": scheduler_status,
        "active_jobs": active_jobs,
    }
