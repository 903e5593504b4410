from db.models import MonitorCheck
from db.repositories.base_repository import BaseRepository
from datetime import datetime


class CheckRepository(BaseRepository):
    def create(self, check: MonitorCheck) -> MonitorCheck:
        self.db.add(check)
        self.db.commit()
        self.db.refresh(check)
        return check

    def get_latest(self, monitor_id: int) -> MonitorCheck | None:
        return (
            self.db.query(MonitorCheck)
            .filter(MonitorCheck.monitor_id == monitor_id)
            .order_by(MonitorCheck.checked_at.desc(), MonitorCheck.id.desc())
            .first()
        )

    def list_since(self, monitor_id: int, since: datetime) -> list[MonitorCheck]:
        """Checks at or after ``since``, newest first."""
        return (
            self.db.query(MonitorCheck)
            .filter(MonitorCheck.monitor_id == monitor_id, MonitorCheck.checked_at >= since)
            .order_by(MonitorCheck.checked_at.desc(), MonitorCheck.id.desc())
            .all()
        )

    def list_recent(self, monitor_id: int, limit: int = 50) -> list[MonitorCheck]:
        return (
            self.db.query(MonitorCheck)
            .filter(MonitorCheck.monitor_id == monitor_id)
            .order_by(MonitorCheck.checked_at.desc(), MonitorCheck.id.desc())
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(MonitorCheck).count()
