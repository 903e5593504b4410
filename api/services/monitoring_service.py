from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator, Optional
import enum
import logging
import math
import threading

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from api.services.email_service import EmailService
from api.services.incident_tracker import IncidentOutcome, IncidentTracker
from api.services.notifier import NotifierDispatch, select_notifications
from api.services.prober import CheckResult, Prober
from api.services.result_recorder import RecordOutcome, ResultRecorder
from db.base import utcnow
from db.models import CheckStatus, NotificationType
from db.models.monitor import MAX_INTERVAL_MINUTES, MIN_INTERVAL_MINUTES
from db.repositories.check_repository import CheckRepository
from db.repositories.incident_repository import IncidentRepository
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.notification_repository import NotificationRepository
from db.repositories.user_repository import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 20
MISFIRE_GRACE_SECONDS = 60


class RecurrenceKind(str, enum.Enum):
    MINUTELY = "minutely"
    HOURLY = "hourly"


@dataclass(frozen=True)
class Recurrence:
    kind: RecurrenceKind
    every: int

    @classmethod
    def from_interval(cls, interval_minutes: int) -> "Recurrence":
        """
        Whole-hour intervals recur hourly, everything else minutely, so a
        90 minute monitor runs every 90 minutes rather than every hour.
        """
        interval_minutes = int(interval_minutes)
        if not MIN_INTERVAL_MINUTES <= interval_minutes <= MAX_INTERVAL_MINUTES:
            raise ValueError(
                f"Interval must be between {MIN_INTERVAL_MINUTES} and "
                f"{MAX_INTERVAL_MINUTES} minutes, got {interval_minutes}"
            )
        if interval_minutes >= 60 and interval_minutes % 60 == 0:
            return cls(RecurrenceKind.HOURLY, interval_minutes // 60)
        return cls(RecurrenceKind.MINUTELY, interval_minutes)

    @property
    def minutes(self) -> int:
        return self.every * 60 if self.kind == RecurrenceKind.HOURLY else self.every

    @property
    def expression(self) -> str:
        unit = "hour" if self.kind == RecurrenceKind.HOURLY else "minute"
        return f"every {self.every} {unit}{'s' if self.every != 1 else ''}"

    def to_trigger(self) -> IntervalTrigger:
        if self.kind == RecurrenceKind.HOURLY:
            return IntervalTrigger(hours=self.every, timezone=timezone.utc)
        return IntervalTrigger(minutes=self.every, timezone=timezone.utc)


@dataclass
class ScheduledJob:
    monitor_id: int
    url: str
    interval_minutes: int
    recurrence: Recurrence
    job: Job
    started_at: datetime = field(default_factory=utcnow)

    @property
    def recurrence_expression(self) -> str:
        return self.recurrence.expression

    @property
    def next_run_time(self) -> Optional[datetime]:
        # Jobs added before the scheduler starts have no next_run_time yet
        return getattr(self.job, "next_run_time", None)


@dataclass
class TickOutcome:
    monitor_id: int
    result: CheckResult
    record: RecordOutcome
    incident: IncidentOutcome
    notifications: list[tuple[NotificationType, bool]] = field(default_factory=list)


@dataclass
class MonitorStats:
    total_checks: int
    up_checks: int
    down_checks: int
    uptime_percentage: float
    avg_response_time: int
    incidents: int
    last_check: Optional[datetime]
    last_incident: Optional[datetime]


def create_scheduler(max_workers: int = DEFAULT_MAX_WORKERS) -> BackgroundScheduler:
    return BackgroundScheduler(
        executors={"default": ThreadPoolExecutor(max_workers)},
        timezone=timezone.utc,
    )


def round_half_up(value: float) -> int:
    # round() goes to the even neighbour on .5
    return math.floor(value + 0.5)


def job_id_for(monitor_id: int) -> str:
    return f"monitor-{monitor_id}"


class MonitoringService:
    """
    Owns one recurring check job per active monitor.

    Each tick runs Prober -> ResultRecorder -> IncidentTracker ->
    NotifierDispatch with short-lived database sessions. The job table is private
    to this class; callers go through start/stop/update_monitoring.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        prober: Optional[Prober] = None,
        email_service: Optional[EmailService] = None,
        scheduler: Optional[BackgroundScheduler] = None,
    ):
        self.session_factory = session_factory
        self.prober = prober or Prober()
        self.email_service = email_service
        self.scheduler = scheduler or create_scheduler()
        self.scheduler.add_listener(
            self._job_error_listener, EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES
        )
        self._jobs: dict[int, ScheduledJob] = {}
        self._lock = threading.RLock()

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    @property
    def running(self) -> bool:
        return self.scheduler.running

    def initialize(self) -> int:
        """Start the scheduler and arm a job for every active monitor."""
        logger.info("Initializing monitoring service...")
        if not self.scheduler.running:
            self.scheduler.start()

        try:
            with self._session() as db:
                monitor_ids = [m.id for m in MonitorRepository(db).list_by_active(True)]
        except SQLAlchemyError as e:
            logger.error(f"Failed to load active monitors: {e}")
            return 0

        started = sum(1 for monitor_id in monitor_ids if self.start_monitoring(monitor_id))
        logger.info(f"Monitoring service initialized with {started} monitors")
        return started

    def start_monitoring(self, monitor_id: int) -> bool:
        try:
            with self._session() as db:
                monitor = MonitorRepository(db).get(monitor_id)
                if not monitor or not monitor.is_active:
                    logger.warning(f"Monitor {monitor_id} not found or inactive")
                    return False
                url = monitor.url
                interval_minutes = monitor.interval_minutes
        except SQLAlchemyError as e:
            logger.error(f"Failed to load monitor {monitor_id}: {e}")
            return False

        try:
            recurrence = Recurrence.from_interval(interval_minutes)
        except ValueError as e:
            logger.error(f"Cannot schedule monitor {monitor_id}: {e}")
            return False

        with self._lock:
            self._remove_job_locked(monitor_id)
            job = self.scheduler.add_job(
                self._on_tick,
                trigger=recurrence.to_trigger(),
                args=[monitor_id],
                id=job_id_for(monitor_id),
                name=f"check {url}",
                max_instances=1,
                coalesce=True,
                misfire_grace_time=MISFIRE_GRACE_SECONDS,
                replace_existing=True,
            )
            self._jobs[monitor_id] = ScheduledJob(
                monitor_id=monitor_id,
                url=url,
                interval_minutes=interval_minutes,
                recurrence=recurrence,
                job=job,
            )

        logger.info(
            f"Started monitoring for monitor {monitor_id}: {url} ({recurrence.expression})"
        )
        return True

    def stop_monitoring(self, monitor_id: int) -> bool:
        with self._lock:
            removed = self._remove_job_locked(monitor_id)
        if removed:
            logger.info(f"Stopped monitoring for monitor {monitor_id}")
        return removed

    def update_monitoring(self, monitor_id: int) -> bool:
        self.stop_monitoring(monitor_id)
        return self.start_monitoring(monitor_id)

    def _remove_job_locked(self, monitor_id: int) -> bool:
        scheduled = self._jobs.pop(monitor_id, None)
        if scheduled is None:
            return False
        try:
            self.scheduler.remove_job(scheduled.job.id)
        except JobLookupError:
            logger.debug(f"Job for monitor {monitor_id} was already gone from the scheduler")
        return True

    def get_all_active_jobs(self) -> list[ScheduledJob]:
        with self._lock:
            return list(self._jobs.values())

    def shutdown(self, wait: bool = True) -> None:
        """Cancel every job; in-flight checks are allowed to finish when ``wait`` is set."""
        logger.info("Shutting down monitoring service...")
        with self._lock:
            for monitor_id in list(self._jobs):
                self._remove_job_locked(monitor_id)
            self._jobs.clear()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)
        logger.info("Monitoring service shutdown complete")

    def _on_tick(self, monitor_id: int) -> None:
        # Nothing raised by a check may reach the scheduler thread
        try:
            self.run_check(monitor_id)
        except Exception:
            logger.exception(f"Error performing check for monitor {monitor_id}")

    def run_check(self, monitor_id: int) -> Optional[TickOutcome]:
        """
        Run one full check cycle for a monitor; returns None if it was skipped.

        No database connection is held during the HTTP check: the monitor and
        its previous check are read and detached first, and the results are
        written through a second session.
        """
        with self._session() as db:
            # Reload so a deactivation since the last tick is honoured
            monitor = MonitorRepository(db).get(monitor_id)
            if not monitor or not monitor.is_active:
                logger.warning(f"Monitor {monitor_id} not found or inactive during check")
                return None
            previous_check = CheckRepository(db).get_latest(monitor_id)
            db.expunge_all()

        result = self.prober.check(monitor.url)

        with self._session() as db:
            monitor_repo = MonitorRepository(db)
            check_repo = CheckRepository(db)

            record = ResultRecorder(check_repo, monitor_repo).record(monitor_id, result)
            incident = IncidentTracker(IncidentRepository(db)).reconcile(monitor_id, result)
            outcome = TickOutcome(monitor_id, result, record, incident)

            events = select_notifications(monitor, result, incident, previous_check)
            if events:
                notifier = NotifierDispatch(
                    NotificationRepository(db), monitor_repo, UserRepository(db), self.email_service
                )
                for notification_type, details in events:
                    delivered = notifier.notify(monitor_id, notification_type, details)
                    outcome.notifications.append((notification_type, delivered))

            logger.debug(
                f"Check completed for monitor {monitor_id}: {monitor.url} "
                f"{result.status.value} in {result.response_time_ms}ms"
            )
            return outcome

    def get_monitor_stats(
        self, monitor_id: int, days: int = 30, now: Optional[datetime] = None
    ) -> MonitorStats:
        since = (now or utcnow()) - timedelta(days=days)
        try:
            with self._session() as db:
                checks = CheckRepository(db).list_since(monitor_id, since)
                incidents = IncidentRepository(db).list_since(monitor_id, since)
        except SQLAlchemyError as e:
            logger.error(f"Failed to get stats for monitor {monitor_id}: {e}")
            raise

        total_checks = len(checks)
        up_checks = sum(1 for c in checks if c.status == CheckStatus.UP)
        uptime = (up_checks / total_checks) * 100 if total_checks else 0.0
        timings = [c.response_time_ms for c in checks if c.response_time_ms is not None]
        avg_response_time = round_half_up(sum(timings) / len(timings)) if timings else 0

        return MonitorStats(
            total_checks=total_checks,
            up_checks=up_checks,
            down_checks=total_checks - up_checks,
            uptime_percentage=round_half_up(uptime * 100) / 100,
            avg_response_time=avg_response_time,
            incidents=len(incidents),
            last_check=checks[0].checked_at if checks else None,
            last_incident=incidents[0].started_at if incidents else None,
        )

    def _job_error_listener(self, event):
        if event.code == EVENT_JOB_MAX_INSTANCES:
            logger.warning(f"Skipped run of {event.job_id}: previous check still in flight")
        else:
            logger.error(f"Job {event.job_id} crashed: {event.exception}")
