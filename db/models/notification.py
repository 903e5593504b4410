import enum
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship
from db.base import Base, utcnow


class NotificationType(str, enum.Enum):
    DOWN = "DOWN"
    UP = "UP"
    SLOW = "SLOW"
    RESOLVED = "RESOLVED"


class NotificationStatus(str, enum.Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


class Notification(Base):
    __tablename__ = "notifications"
    id = Column(Integer, primary_key=True)
    monitor_id = Column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    type = Column(Enum(NotificationType, native_enum=False, length=16), nullable=False)
    status = Column(
        Enum(NotificationStatus, native_enum=False, length=16),
        nullable=False,
        default=NotificationStatus.PENDING,
    )
    email = Column(String, nullable=False)
    subject = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow)
    sent_at = Column(DateTime, nullable=True)
    error_message = Column(Text, nullable=True)

    monitor = relationship("Monitor", back_populates="notifications")
