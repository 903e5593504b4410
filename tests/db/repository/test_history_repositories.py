import pytest
from datetime import datetime, timedelta
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from db.base import Base
from db.models import (
    CheckStatus,
    Incident,
    IncidentStatus,
    Monitor,
    MonitorCheck,
    Notification,
    NotificationStatus,
    NotificationType,
)
from db.repositories.check_repository import CheckRepository
from db.repositories.incident_repository import IncidentRepository
from db.repositories.notification_repository import NotificationRepository

T0 = datetime(2026, 4, 1, 12, 0, 0)


@pytest.fixture
def session():
    # Create an in-memory SQLite database
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    sess = Session()
    yield sess
    sess.close()


@pytest.fixture
def monitor(session):
    monitor = Monitor(url="https://example.com", user_id=1)
    session.add(monitor)
    session.commit()
    return monitor


class TestCheckRepository:
    def test_latest_and_recent(self, session, monitor):
        repo = CheckRepository(session)
        for i, status in enumerate([CheckStatus.UP, CheckStatus.DOWN, CheckStatus.UP]):
            repo.create(MonitorCheck(monitor_id=monitor.id, status=status, checked_at=T0 + timedelta(minutes=i)))

        assert repo.get_latest(monitor.id).checked_at == T0 + timedelta(minutes=2)
        recent = repo.list_recent(monitor.id, limit=2)
        assert [c.checked_at for c in recent] == [T0 + timedelta(minutes=2), T0 + timedelta(minutes=1)]
        assert repo.count() == 3

    def test_list_since_is_inclusive(self, session, monitor):
        repo = CheckRepository(session)
        repo.create(MonitorCheck(monitor_id=monitor.id, status=CheckStatus.UP, checked_at=T0 - timedelta(seconds=1)))
        repo.create(MonitorCheck(monitor_id=monitor.id, status=CheckStatus.UP, checked_at=T0))

        assert [c.checked_at for c in repo.list_since(monitor.id, T0)] == [T0]

    def test_no_checks(self, session, monitor):
        assert CheckRepository(session).get_latest(monitor.id) is None
        assert CheckRepository(session).count() == 0


class TestIncidentRepository:
    def test_open_and_close(self, session, monitor):
        repo = IncidentRepository(session)
        incident = repo.create(Incident(monitor_id=monitor.id, started_at=T0, description="HTTP 500"))

        assert incident.status == IncidentStatus.DOWN
        assert repo.get_open(monitor.id).id == incident.id

        repo.close(incident, ended_at=T0 + timedelta(minutes=7), duration_minutes=7)

        assert repo.get_open(monitor.id) is None
        assert incident.status == IncidentStatus.UP
        assert incident.duration_minutes == 7

    def test_list_since_newest_first(self, session, monitor):
        repo = IncidentRepository(session)
        repo.create(Incident(monitor_id=monitor.id, started_at=T0 - timedelta(days=10)))
        repo.create(Incident(monitor_id=monitor.id, started_at=T0 - timedelta(days=1)))
        repo.create(Incident(monitor_id=monitor.id, started_at=T0 - timedelta(days=2)))

        found = repo.list_since(monitor.id, T0 - timedelta(days=7))

        assert [i.started_at for i in found] == [T0 - timedelta(days=1), T0 - timedelta(days=2)]
        assert len(repo.list_by_monitor(monitor.id)) == 3
        assert repo.count() == 3


class TestNotificationRepository:
    def _notification(self, monitor_id):
        return Notification(
            monitor_id=monitor_id,
            type=NotificationType.DOWN,
            email="ops@example.com",
            subject="🚨 Monitor DOWN: https://example.com",
            message="down",
        )

    def test_created_pending(self, session, monitor):
        notification = NotificationRepository(session).create(self._notification(monitor.id))
        assert notification.status == NotificationStatus.PENDING
        assert notification.created_at is not None

    def test_mark_sent(self, session, monitor):
        repo = NotificationRepository(session)
        notification = repo.create(self._notification(monitor.id))

        repo.mark_sent(notification, sent_at=T0)

        assert notification.status == NotificationStatus.SENT
        assert notification.sent_at == T0

    def test_mark_failed(self, session, monitor):
        repo = NotificationRepository(session)
        notification = repo.create(self._notification(monitor.id))

        repo.mark_failed(notification, "SMTP error: refused")

        stored = repo.list_by_monitor(monitor.id)
        assert [n.status for n in stored] == [NotificationStatus.FAILED]
        assert stored[0].error_message == "SMTP error: refused"
        assert stored[0].sent_at is None
