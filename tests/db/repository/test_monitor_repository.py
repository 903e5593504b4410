import pytest
from datetime import datetime
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from db.base import Base
from db.models import CheckStatus, Incident, MonitorCheck
from db.models.monitor import Monitor
from db.repositories.monitor_repository import MonitorRepository


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
def monitor_repo(session):
    return MonitorRepository(session)


def test_create_monitor(monitor_repo: MonitorRepository, session):
    monitor = Monitor(name="Test Monitor", url="https://example.com", interval_minutes=10, user_id=1)
    monitor_repo.create(monitor)
    found = session.query(Monitor).filter_by(name="Test Monitor").first()
    assert found is not None
    assert found.url == "https://example.com"
    assert found.interval_minutes == 10
    assert found.user_id == 1
    assert found.is_active is True
    assert found.alert_on_down is True
    assert found.alert_on_slow is False
    assert found.last_status is None


def test_get_monitor_by_id(monitor_repo, session):
    monitor = Monitor(id=42, name="Monitor42", url="https://42.example.com", interval_minutes=5, user_id=2)
    session.add(monitor)
    session.commit()
    found = monitor_repo.get_by_id(42, user_id=2)
    assert found is not None
    assert found.name == "Monitor42"
    assert found.user_id == 2
    assert monitor_repo.get_by_id(42, user_id=3) is None
    assert monitor_repo.get(42) is found


@pytest.mark.parametrize(
    "monitors,user_id,expected_count",
    [
        (
            [
                Monitor(name="M1", url="https://m1.example.com", user_id=10),
                Monitor(name="M2", url="https://m2.example.com", user_id=10),
                Monitor(name="M3", url="https://m3.example.com", user_id=11),
            ],
            10,
            2,
        ),
        (
            [
                Monitor(name="M4", url="https://m4.example.com", user_id=12),
            ],
            12,
            1,
        ),
        (
            [],
            15,
            0,
        ),
    ],
)
def test_list_monitors_by_user_parametrized(
    monitor_repo: MonitorRepository, session, monitors, user_id, expected_count
):
    session.add_all(monitors)
    session.commit()
    found = monitor_repo.list_by_user(user_id=user_id)
    assert len(found) == expected_count
    assert all(m.user_id == user_id for m in found)


def test_list_by_active(monitor_repo, session):
    session.add_all(
        [
            Monitor(url="https://a.example.com", user_id=1, is_active=True),
            Monitor(url="https://b.example.com", user_id=1, is_active=False),
            Monitor(url="https://c.example.com", user_id=2, is_active=True),
        ]
    )
    session.commit()

    active = monitor_repo.list_by_active(True)
    inactive = monitor_repo.list_by_active(False)

    assert [m.url for m in active] == ["https://a.example.com", "https://c.example.com"]
    assert [m.url for m in inactive] == ["https://b.example.com"]


def test_update_monitor(monitor_repo, session):
    monitor = Monitor(name="Original", url="https://example.com", interval_minutes=10, user_id=1)
    session.add(monitor)
    session.commit()

    updated = monitor_repo.update(
        monitor.id, 1, {"name": "Updated", "interval_minutes": None, "user_id": 99}
    )

    assert updated.name == "Updated"
    assert updated.interval_minutes == 10
    assert updated.user_id == 1


def test_update_monitor_wrong_owner(monitor_repo, session):
    monitor = Monitor(url="https://example.com", user_id=1)
    session.add(monitor)
    session.commit()

    with pytest.raises(ValueError):
        monitor_repo.update(monitor.id, 2, {"name": "Hijacked"})


def test_update_status(monitor_repo, session):
    monitor = Monitor(url="https://example.com", user_id=1)
    session.add(monitor)
    session.commit()
    checked_at = datetime(2026, 5, 1, 8, 30)

    monitor_repo.update_status(monitor.id, CheckStatus.TIMEOUT, checked_at)

    session.refresh(monitor)
    assert monitor.last_status == CheckStatus.TIMEOUT
    assert monitor.last_checked_at == checked_at
    assert monitor_repo.update_status(404, CheckStatus.UP, checked_at) is None


def test_delete_monitor(monitor_repo, session):
    monitor = Monitor(name="ToDelete", url="https://example.com", user_id=1)
    session.add(monitor)
    session.commit()
    monitor_id = monitor.id

    monitor_repo.delete(monitor_id, user_id=1)
    found = monitor_repo.get_by_id(monitor_id, user_id=1)
    assert found is None


def test_delete_cascades_history(monitor_repo, session):
    monitor = Monitor(url="https://example.com", user_id=1)
    session.add(monitor)
    session.commit()
    session.add(MonitorCheck(monitor_id=monitor.id, status=CheckStatus.UP))
    session.add(Incident(monitor_id=monitor.id))
    session.commit()

    monitor_repo.delete(monitor.id)

    assert session.query(MonitorCheck).count() == 0
    assert session.query(Incident).count() == 0


def test_delete_missing_monitor(monitor_repo):
    with pytest.raises(ValueError):
        monitor_repo.delete(404, user_id=1)


def test_list_all_and_count(monitor_repo, session):
    session.add_all(
        [
            Monitor(url="https://a.example.com", user_id=1, last_status=CheckStatus.UP),
            Monitor(url="https://b.example.com", user_id=2, last_status=CheckStatus.DOWN),
            Monitor(url="https://c.example.com", user_id=2, is_active=False),
        ]
    )
    session.commit()

    assert [m.url for m in monitor_repo.list_all(limit=2)] == [
        "https://c.example.com",
        "https://b.example.com",
    ]
    assert [m.url for m in monitor_repo.list_all(user_id=2, status=CheckStatus.DOWN)] == [
        "https://b.example.com"
    ]
    assert [m.url for m in monitor_repo.list_all(search="A.EXAMPLE")] == ["https://a.example.com"]
    assert monitor_repo.count() == 3
    assert monitor_repo.count(user_id=2) == 2
    assert monitor_repo.count(is_active=True) == 2
