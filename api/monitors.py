from dataclasses import asdict
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from api import limiter
from api.dependencies import get_current_user, get_monitor_service, get_monitoring_service
from api.models import (
    CheckResponse,
    IncidentResponse,
    MonitorCreate,
    MonitorResponse,
    MonitorStatsResponse,
    MonitorUpdate,
)
from api.services.monitor_service import MonitorService
from api.services.monitoring_service import MonitoringService
from db.models.user import User

router = APIRouter()


def _not_found(e: ValueError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.get("/monitors", response_model=list[MonitorResponse])
def list_monitors(
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    return monitor_service.list_monitors(current_user.id)


@router.post("/monitors", response_model=MonitorResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("30/minute")
def create_monitor(
    request: Request,
    monitor: MonitorCreate,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    data = monitor.model_dump(exclude={"url", "interval_minutes"})
    created = monitor_service.create_monitor(
        current_user.id,
        str(monitor.url),  # Pydantic HttpUrl -> plain string for storage
        monitor.interval_minutes,
        **data,
    )
    if created.is_active:
        monitoring_service.start_monitoring(created.id)
    return created


@router.get("/monitors/{monitor_id}", response_model=MonitorResponse)
def get_monitor(
    monitor_id: int,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        return monitor_service.get_monitor(monitor_id, current_user.id)
    except ValueError as e:
        raise _not_found(e)


@router.put("/monitors/{monitor_id}", response_model=MonitorResponse)
def update_monitor(
    monitor_id: int,
    monitor: MonitorUpdate,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    try:
        updated = monitor_service.update_monitor(monitor_id, current_user.id, monitor.changes())
    except ValueError as e:
        raise _not_found(e)
    if monitor.affects_schedule:
        # Deactivated monitors are simply not restarted
        monitoring_service.update_monitoring(monitor_id)
    return updated


@router.delete("/monitors/{monitor_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_monitor(
    monitor_id: int,
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    try:
        monitor_service.get_monitor(monitor_id, current_user.id)
    except ValueError as e:
        raise _not_found(e)
    monitoring_service.stop_monitoring(monitor_id)
    monitor_service.delete_monitor(monitor_id, current_user.id)


@router.get("/monitors/{monitor_id}/stats", response_model=MonitorStatsResponse)
def get_monitor_stats(
    monitor_id: int,
    days: int = Query(30, ge=1, le=365),
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
    monitoring_service: MonitoringService = Depends(get_monitoring_service),
):
    try:
        monitor_service.get_monitor(monitor_id, current_user.id)
    except ValueError as e:
        raise _not_found(e)
    return asdict(monitoring_service.get_monitor_stats(monitor_id, days))


@router.get("/monitors/{monitor_id}/checks", response_model=list[CheckResponse])
def list_checks(
    monitor_id: int,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        return monitor_service.list_checks(monitor_id, current_user.id, limit)
    except ValueError as e:
        raise _not_found(e)


@router.get("/monitors/{monitor_id}/incidents", response_model=list[IncidentResponse])
def list_incidents(
    monitor_id: int,
    limit: int = Query(50, ge=1, le=500),
    current_user: User = Depends(get_current_user),
    monitor_service: MonitorService = Depends(get_monitor_service),
):
    try:
        return monitor_service.list_incidents(monitor_id, current_user.id, limit)
    except ValueError as e:
        raise _not_found(e)
