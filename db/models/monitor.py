from sqlalchemy import Boolean, Column, DateTime, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from db.base import Base, utcnow
from db.models.monitor_check import CheckStatus

MIN_INTERVAL_MINUTES = 1
MAX_INTERVAL_MINUTES = 1440
DEFAULT_SLOW_THRESHOLD_MS = 5000


class Monitor(Base):
    __tablename__ = "monitors"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=True)
    url = Column(String, nullable=False)
    interval_minutes = Column(Integer, nullable=False, default=5)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    last_status = Column(Enum(CheckStatus, native_enum=False, length=16), nullable=True)
    last_checked_at = Column(DateTime, nullable=True)

    # Alert configuration
    alerts_enabled = Column(Boolean, nullable=False, default=True)
    alert_email = Column(String, nullable=True)  # Falls back to the owner's email
    alert_on_down = Column(Boolean, nullable=False, default=True)
    alert_on_up = Column(Boolean, nullable=False, default=True)
    alert_on_slow = Column(Boolean, nullable=False, default=False)
    slow_threshold_ms = Column(Integer, nullable=False, default=DEFAULT_SLOW_THRESHOLD_MS)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="monitors")
    checks = relationship(
        "MonitorCheck", back_populates="monitor", cascade="all, delete-orphan"
    )
    incidents = relationship(
        "Incident", back_populates="monitor", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="monitor", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Monitor id={self.id} url={self.url!r} interval={self.interval_minutes}m>"
