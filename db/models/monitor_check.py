import enum
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from db.base import Base, utcnow


class CheckStatus(str, enum.Enum):
    UP = "UP"
    DOWN = "DOWN"
    TIMEOUT = "TIMEOUT"
    ERROR = "ERROR"

    @property
    def is_down(self) -> bool:
        return self is not CheckStatus.UP


class MonitorCheck(Base):
    __tablename__ = "monitor_checks"
    __table_args__ = (
        Index("ix_monitor_checks_monitor_checked", "monitor_id", "checked_at"),
    )
    id = Column(Integer, primary_key=True)
    monitor_id = Column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False
    )
    status = Column(Enum(CheckStatus, native_enum=False, length=16), nullable=False)
    status_code = Column(Integer, nullable=True)
    response_time_ms = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    checked_at = Column(DateTime, nullable=False, default=utcnow)

    monitor = relationship("Monitor", back_populates="checks")
