from pydantic import BaseModel, ConfigDict, EmailStr, HttpUrl, conint, constr, field_validator
from datetime import datetime
from typing import Optional
import re

from db.models import CheckStatus, IncidentStatus
from db.models.monitor import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES

IntervalMinutes = conint(ge=MIN_INTERVAL_MINUTES, le=MAX_INTERVAL_MINUTES)
SlowThresholdMs = conint(ge=1, le=120_000)


def _strip_tags(name):
    if name:
        # Remove any HTML/script tags
        name = re.sub(r"<[^>]+>", "", name)
        return name.strip()
    return name


class MonitorCreate(BaseModel):
    url: HttpUrl
    interval_minutes: IntervalMinutes = 5  # type: ignore
    name: Optional[constr(max_length=200, strip_whitespace=True)] = None  # type: ignore
    is_active: bool = True
    alerts_enabled: bool = True
    alert_email: Optional[EmailStr] = None
    alert_on_down: bool = True
    alert_on_up: bool = True
    alert_on_slow: bool = False
    slow_threshold_ms: SlowThresholdMs = 5000  # type: ignore

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)


class MonitorUpdate(BaseModel):
    url: Optional[HttpUrl] = None
    interval_minutes: Optional[IntervalMinutes] = None  # type: ignore
    name: Optional[constr(max_length=200, strip_whitespace=True)] = None  # type: ignore
    is_active: Optional[bool] = None
    alerts_enabled: Optional[bool] = None
    alert_email: Optional[EmailStr] = None
    alert_on_down: Optional[bool] = None
    alert_on_up: Optional[bool] = None
    alert_on_slow: Optional[bool] = None
    slow_threshold_ms: Optional[SlowThresholdMs] = None  # type: ignore

    @field_validator("name")
    @classmethod
    def sanitize_name(cls, name):
        return _strip_tags(name)

    def changes(self) -> dict:
        data = self.model_dump(exclude_unset=True, exclude_none=True)
        if "url" in data:
            data["url"] = str(self.url)
        return data

    @property
    def affects_schedule(self) -> bool:
        return bool({"url", "interval_minutes", "is_active"} & self.model_fields_set)


class MonitorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: Optional[str]
    url: str
    interval_minutes: int
    is_active: bool
    last_status: Optional[CheckStatus]
    last_checked_at: Optional[datetime]
    alerts_enabled: bool
    alert_email: Optional[str]
    alert_on_down: bool
    alert_on_up: bool
    alert_on_slow: bool
    slow_threshold_ms: int
    user_id: int


class CheckResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: CheckStatus
    status_code: Optional[int]
    response_time_ms: Optional[int]
    error_message: Optional[str]
    checked_at: datetime


class IncidentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    status: IncidentStatus
    started_at: datetime
    ended_at: Optional[datetime]
    duration_minutes: Optional[int]
    description: Optional[str]


class MonitorStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_checks: int
    up_checks: int
    down_checks: int
    uptime_percentage: float
    avg_response_time: int
    incidents: int
    last_check: Optional[datetime]
    last_incident: Optional[datetime]


class ScheduledJobResponse(BaseModel):
    monitor_id: int
    url: str
    interval_minutes: int
    recurrence: str
    next_run_time: Optional[datetime]
    started_at: datetime


class AdminMonitorPage(BaseModel):
    monitors: list[MonitorResponse]
    total: int
    limit: int
    offset: int


class AdminMonitorDetailResponse(BaseModel):
    monitor: MonitorResponse
    recent_checks: list[CheckResponse]
    recent_incidents: list[IncidentResponse]


class AdminStatsResponse(BaseModel):
    total_users: int
    active_users: int
    total_monitors: int
    active_monitors: int
    total_checks: int
    total_incidents: int
