import enum
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from db.base import Base, utcnow


class IncidentStatus(str, enum.Enum):
    DOWN = "DOWN"
    UP = "UP"


class Incident(Base):
    __tablename__ = "incidents"
    id = Column(Integer, primary_key=True)
    monitor_id = Column(
        Integer, ForeignKey("monitors.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status = Column(
        Enum(IncidentStatus, native_enum=False, length=8),
        nullable=False,
        default=IncidentStatus.DOWN,
    )
    started_at = Column(DateTime, nullable=False, default=utcnow)
    ended_at = Column(DateTime, nullable=True)  # NULL while the incident is open
    duration_minutes = Column(Integer, nullable=True)
    description = Column(Text, nullable=True)

    monitor = relationship("Monitor", back_populates="incidents")
