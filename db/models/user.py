from sqlalchemy import Column, Integer, String, Boolean
from sqlalchemy.orm import relationship
from db.base import Base


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=True)  # Managed by the account service
    is_admin = Column(Boolean, default=False)
    is_active = Column(Boolean, default=True)

    monitors = relationship("Monitor", back_populates="user")
