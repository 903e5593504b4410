from db.models import CheckStatus, Monitor
from db.repositories.base_repository import BaseRepository
from datetime import datetime

# Fields a user-facing update may change
UPDATABLE_FIELDS = (
    "name",
    "url",
    "interval_minutes",
    "is_active",
    "alerts_enabled",
    "alert_email",
    "alert_on_down",
    "alert_on_up",
    "alert_on_slow",
    "slow_threshold_ms",
)


class MonitorRepository(BaseRepository):
    def create(self, monitor: Monitor) -> Monitor:
        self.db.add(monitor)
        self.db.commit()
        self.db.refresh(monitor)
        return monitor

    def get(self, monitor_id: int) -> Monitor | None:
        return self.db.query(Monitor).filter(Monitor.id == monitor_id).first()

    def get_by_id(self, monitor_id: int, user_id: int) -> Monitor | None:
        return (
            self.db.query(Monitor)
            .filter(Monitor.id == monitor_id, Monitor.user_id == user_id)
            .first()
        )

    def list_by_user(self, user_id: int) -> list[Monitor]:
        return (
            self.db.query(Monitor)
            .filter(Monitor.user_id == user_id)
            .order_by(Monitor.id)
            .all()
        )

    def list_by_active(self, is_active: bool = True) -> list[Monitor]:
        return (
            self.db.query(Monitor)
            .filter(Monitor.is_active == is_active)
            .order_by(Monitor.id)
            .all()
        )

    def update(self, monitor_id: int, user_id: int, update_data: dict) -> Monitor:
        monitor = self.get_by_id(monitor_id, user_id)
        if not monitor:
            raise ValueError("Monitor not found or not authorized")
        # Only apply known fields that were actually provided
        for key, value in update_data.items():
            if key in UPDATABLE_FIELDS and value is not None:
                setattr(monitor, key, value)
        self.db.commit()
        self.db.refresh(monitor)
        return monitor

    def update_status(
        self, monitor_id: int, status: CheckStatus, checked_at: datetime
    ) -> Monitor | None:
        monitor = self.get(monitor_id)
        if not monitor:
            return None
        monitor.last_status = status
        monitor.last_checked_at = checked_at
        self.db.commit()
        return monitor

    def delete(self, monitor_id: int, user_id: int | None = None) -> None:
        monitor = self.get(monitor_id) if user_id is None else self.get_by_id(monitor_id, user_id)
        if not monitor:
            raise ValueError("Monitor not found or not authorized")
        self.db.delete(monitor)
        self.db.commit()

    def _filtered(self, user_id: int | None = None, status: CheckStatus | None = None, search: str | None = None):
        query = self.db.query(Monitor)
        if user_id is not None:
            query = query.filter(Monitor.user_id == user_id)
        if status is not None:
            query = query.filter(Monitor.last_status == status)
        if search:
            query = query.filter(Monitor.url.ilike(f"%{search}%"))
        return query

    def list_all(
        self,
        user_id: int | None = None,
        status: CheckStatus | None = None,
        search: str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> list[Monitor]:
        """Monitors across all users, newest first."""
        return (
            self._filtered(user_id, status, search)
            .order_by(Monitor.created_at.desc(), Monitor.id.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )

    def count(
        self,
        user_id: int | None = None,
        status: CheckStatus | None = None,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> int:
        query = self._filtered(user_id, status, search)
        if is_active is not None:
            query = query.filter(Monitor.is_active == is_active)
        return query.count()
