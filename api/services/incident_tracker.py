from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import enum
import logging

from sqlalchemy.exc import SQLAlchemyError

from api.services.prober import CheckResult
from db.base import utcnow
from db.models import Incident, IncidentStatus
from db.repositories.incident_repository import IncidentRepository

logger = logging.getLogger(__name__)


class IncidentTransition(str, enum.Enum):
    OPENED = "opened"
    CLOSED = "closed"
    NONE = "none"


@dataclass
class IncidentOutcome:
    transition: IncidentTransition = IncidentTransition.NONE
    incident: Optional[Incident] = None
    error: Optional[str] = None


def incident_duration_minutes(started_at: datetime, ended_at: datetime) -> int:
    """Whole minutes between start and end, floored."""
    return max(0, int((ended_at - started_at).total_seconds() // 60))


class IncidentTracker:
    """
    Opens and closes incidents for a monitor from its latest check result.

    The open incident is re-read on every call, so the tracker resumes
    correctly after a restart. Calls for the same monitor are serialized by
    the scheduler (one job per monitor, one running instance per job).
    """

    def __init__(self, incident_repo: IncidentRepository):
        self.incident_repo = incident_repo

    def reconcile(
        self, monitor_id: int, result: CheckResult, now: Optional[datetime] = None
    ) -> IncidentOutcome:
        now = now or utcnow()
        try:
            open_incident = self.incident_repo.get_open(monitor_id)

            if result.is_down and open_incident is None:
                incident = self.incident_repo.create(
                    Incident(
                        monitor_id=monitor_id,
                        status=IncidentStatus.DOWN,
                        started_at=now,
                        description=result.error_message
                        or f"Monitor is {result.status.value.lower()}",
                    )
                )
                logger.info(
                    f"Incident {incident.id} started for monitor {monitor_id}: "
                    f"{result.status.value} {result.error_message or ''}".rstrip()
                )
                return IncidentOutcome(IncidentTransition.OPENED, incident)

            if not result.is_down and open_incident is not None:
                duration = incident_duration_minutes(open_incident.started_at, now)
                incident = self.incident_repo.close(open_incident, now, duration)
                logger.info(
                    f"Incident {incident.id} resolved for monitor {monitor_id} "
                    f"after {duration} minutes"
                )
                return IncidentOutcome(IncidentTransition.CLOSED, incident)

            return IncidentOutcome(IncidentTransition.NONE, open_incident)
        except SQLAlchemyError as e:
            self.incident_repo.rollback()
            logger.error(f"Failed to handle incidents for monitor {monitor_id}: {e}")
            return IncidentOutcome(error=str(e))
