from db.repositories.monitor_repository import MonitorRepository
from db.repositories.check_repository import CheckRepository
from db.repositories.incident_repository import IncidentRepository
from db.models import Incident, Monitor, MonitorCheck
from typing import Optional
import logging

logger = logging.getLogger(__name__)


class MonitorService:
    """Owner-scoped monitor CRUD used by the route handlers."""

    def __init__(
        self,
        monitor_repo: MonitorRepository,
        check_repo: CheckRepository,
        incident_repo: IncidentRepository,
    ):
        self.monitor_repo = monitor_repo
        self.check_repo = check_repo
        self.incident_repo = incident_repo

    def create_monitor(
        self,
        user_id: int,
        url: str,
        interval_minutes: int,
        name: Optional[str] = None,
        is_active: bool = True,
        **alert_settings,
    ) -> Monitor:
        monitor = Monitor(
            user_id=user_id,
            url=url,
            interval_minutes=interval_minutes,
            name=name,
            is_active=is_active,
            **{k: v for k, v in alert_settings.items() if v is not None},
        )
        monitor = self.monitor_repo.create(monitor)
        logger.info(f"Created monitor {monitor.id} for user {user_id}: {url}")
        return monitor

    def update_monitor(self, monitor_id: int, user_id: int, update_data: dict) -> Monitor:
        monitor = self.monitor_repo.update(monitor_id, user_id, update_data)
        logger.info(f"Updated monitor {monitor_id} for user {user_id}")
        return monitor

    def get_monitor(self, monitor_id: int, user_id: int) -> Monitor:
        monitor = self.monitor_repo.get_by_id(monitor_id, user_id)
        if not monitor:
            raise ValueError("Monitor not found or not authorized")
        return monitor

    def delete_monitor(self, monitor_id: int, user_id: Optional[int] = None) -> None:
        self.monitor_repo.delete(monitor_id, user_id)
        logger.info(f"Deleted monitor {monitor_id}")

    def list_monitors(self, user_id: int) -> list[Monitor]:
        return self.monitor_repo.list_by_user(user_id)

    def list_checks(self, monitor_id: int, user_id: int, limit: int = 50) -> list[MonitorCheck]:
        self.get_monitor(monitor_id, user_id)
        return self.check_repo.list_recent(monitor_id, limit)

    def list_incidents(self, monitor_id: int, user_id: int, limit: int = 50) -> list[Incident]:
        self.get_monitor(monitor_id, user_id)
        return self.incident_repo.list_by_monitor(monitor_id, limit)

    def list_all_monitors(self, limit: int = 20, offset: int = 0, **filters) -> tuple[list[Monitor], int]:
        """Page of monitors across every user, with the total matching the filters."""
        return self.monitor_repo.list_all(limit=limit, offset=offset, **filters), self.monitor_repo.count(**filters)

    def get_monitor_detail(self, monitor_id: int, history: int = 10):
        monitor = self.monitor_repo.get(monitor_id)
        if not monitor:
            raise ValueError("Monitor not found")
        checks = self.check_repo.list_recent(monitor_id, history)
        incidents = self.incident_repo.list_by_monitor(monitor_id, history)
        return monitor, checks, incidents
