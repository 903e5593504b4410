from sqlalchemy import Column, Integer, String, Boolean, DateTime
from db.base import Base, utcnow


class Settings(Base):
    """Key/value configuration (SMTP, JWT secret) used when the environment is silent."""

    __tablename__ = "settings"
    id = Column(Integer, primary_key=True)
    key = Column(String, unique=True, nullable=False, index=True)
    value = Column(String, nullable=True)
    is_secret = Column(Boolean, default=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
