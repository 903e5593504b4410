from db.models import Incident, IncidentStatus
from db.repositories.base_repository import BaseRepository
from datetime import datetime


class IncidentRepository(BaseRepository):
    def create(self, incident: Incident) -> Incident:
        self.db.add(incident)
        self.db.commit()
        self.db.refresh(incident)
        return incident

    def get_open(self, monitor_id: int) -> Incident | None:
        """Most recent incident for the monitor that has not ended yet."""
        return (
            self.db.query(Incident)
            .filter(Incident.monitor_id == monitor_id, Incident.ended_at.is_(None))
            .order_by(Incident.started_at.desc(), Incident.id.desc())
            .first()
        )

    def close(self, incident: Incident, ended_at: datetime, duration_minutes: int) -> Incident:
        incident.status = IncidentStatus.UP
        incident.ended_at = ended_at
        incident.duration_minutes = duration_minutes
        self.db.commit()
        self.db.refresh(incident)
        return incident

    def list_since(self, monitor_id: int, since: datetime) -> list[Incident]:
        """Incidents started at or after ``since``, newest first."""
        return (
            self.db.query(Incident)
            .filter(Incident.monitor_id == monitor_id, Incident.started_at >= since)
            .order_by(Incident.started_at.desc(), Incident.id.desc())
            .all()
        )

    def list_by_monitor(self, monitor_id: int, limit: int = 50) -> list[Incident]:
        return (
            self.db.query(Incident)
            .filter(Incident.monitor_id == monitor_id)
            .order_by(Incident.started_at.desc(), Incident.id.desc())
            .limit(limit)
            .all()
        )

    def count(self) -> int:
        return self.db.query(Incident).count()
