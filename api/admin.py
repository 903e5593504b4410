from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from api.dependencies import get_db, get_monitor_service, get_monitoring_service, require_admin
from api.models import (
    AdminMonitorDetailResponse,
    AdminMonitorPage,
    AdminStatsResponse,
    CheckResponse,
    IncidentResponse,
    MonitorResponse,
    ScheduledJobResponse,
)
from api.services.monitor_service import MonitorService
from api.services.monitoring_service import MonitoringService
from db.models import CheckStatus
from db.models.user import User
from db.repositories.check_repository import CheckRepository
from db.repositories.incident_repository import IncidentRepository
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.user_repository import UserRepository
import logging

router = APIRouter(prefix="/admin")
logger = logging.getLogger(__name__)


@router.get("/jobs", response_model=list[ScheduledJobResponse])
def list_active_jobs(
    current_user: User = Depends(require_admin),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    return [
        ScheduledJobResponse(
            monitor_id=job.monitor_id,
            url=job.url,
            interval_minutes=job.interval_minutes,
            recurrence=job.recurrence_expression,
            next_run_time=job.next_run_time,
            started_at=job.started_at,
        )
        for job in monitoring_service.get_all_active_jobs()
    ]


@router.get("/monitors", response_model=AdminMonitorPage)
def admin_list_monitors(
    user_id: Optional[int] = None,
    last_status: Optional[CheckStatus] = Query(None, alias="status"),
    search: Optional[str] = Query(None, max_length=200),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: User = Depends(require_admin),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    monitors, total = monitor_service.list_all_monitors(
        limit=limit, offset=offset, user_id=user_id, status=last_status, search=search
    )
    logger.info(f"Admin {current_user.id} listed monitors ({len(monitors)} of {total})")
    return AdminMonitorPage(
        monitors=[MonitorResponse.model_validate(m) for m in monitors],
        total=total,
        limit=limit,
        offset=offset,
    )


@router.get("/monitors/{monitor_id}", response_model=AdminMonitorDetailResponse)
def admin_get_monitor(
    monitor_id: int,
    current_user: User = Depends(require_admin),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        monitor, checks, incidents = monitor_service.get_monitor_detail(monitor_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    return AdminMonitorDetailResponse(
        monitor=MonitorResponse.model_validate(monitor),
        recent_checks=[CheckResponse.model_validate(c) for c in checks],
        recent_incidents=[IncidentResponse.model_validate(i) for i in incidents],
    )


@router.delete("/monitors/{monitor_id}", status_code=status.HTTP_204_NO_CONTENT)
def admin_delete_monitor(
    monitor_id: int,
    current_user: User = Depends(require_admin),
    monitor_service: MonitorService = Depends(get_monitor_service),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    # Stop the job first so no tick races the cascade delete
    monitoring_service.stop_monitoring(monitor_id)
    try:
        monitor_service.delete_monitor(monitor_id)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    logger.info(f"Admin {current_user.id} deleted monitor {monitor_id}")


@router.get("/stats", response_model=AdminStatsResponse)
def admin_stats(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Fleet-wide counters for the admin dashboard"""
    user_repo = UserRepository(db)
    monitor_repo = MonitorRepository(db)
    return AdminStatsResponse(
        total_users=user_repo.count(),
        active_users=user_repo.count(is_active=True),
        total_monitors=monitor_repo.count(),
        active_monitors=monitor_repo.count(is_active=True),
        total_checks=CheckRepository(db).count(),
        total_incidents=IncidentRepository(db).count(),
    )
