from dataclasses import dataclass
from datetime import datetime
from typing import Optional
import logging

from sqlalchemy.exc import SQLAlchemyError

from api.services.prober import CheckResult
from db.base import utcnow
from db.models import MonitorCheck
from db.repositories.check_repository import CheckRepository
from db.repositories.monitor_repository import MonitorRepository

logger = logging.getLogger(__name__)


@dataclass
class RecordOutcome:
    check: Optional[MonitorCheck] = None
    status_updated: bool = False
    error: Optional[str] = None

    @property
    def check_stored(self) -> bool:
        return self.check is not None


class ResultRecorder:
    def __init__(self, check_repo: CheckRepository, monitor_repo: MonitorRepository):
        self.check_repo = check_repo
        self.monitor_repo = monitor_repo

    def record(
        self, monitor_id: int, result: CheckResult, checked_at: Optional[datetime] = None
    ) -> RecordOutcome:
        """
        Append the check row and refresh the monitor's last-known status.

        The two writes are independent: a failure in one is logged and
        reported in the outcome but does not prevent the other.
        """
        checked_at = checked_at or utcnow()
        outcome = RecordOutcome()

        try:
            outcome.check = self.check_repo.create(
                MonitorCheck(
                    monitor_id=monitor_id,
                    status=result.status,
                    status_code=result.status_code,
                    response_time_ms=result.response_time_ms,
                    error_message=result.error_message,
                    checked_at=checked_at,
                )
            )
        except SQLAlchemyError as e:
            self.check_repo.rollback()
            outcome.error = f"Failed to store check result: {e}"
            logger.error(f"Failed to store check result for monitor {monitor_id}: {e}")

        try:
            monitor = self.monitor_repo.update_status(monitor_id, result.status, checked_at)
            outcome.status_updated = monitor is not None
        except SQLAlchemyError as e:
            self.monitor_repo.rollback()
            outcome.error = f"Failed to update monitor status: {e}"
            logger.error(f"Failed to update monitor status for monitor {monitor_id}: {e}")

        return outcome
