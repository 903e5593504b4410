from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from db.base import Base
from db.models import Incident, Monitor, MonitorCheck, Notification, Settings, User  # noqa: F401
import logging
import os

logger = logging.getLogger(__name__)

# SQLite by default; any SQLAlchemy URL works
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/monitors.db")

# Create data directory if it doesn't exist
if DATABASE_URL.startswith("sqlite:///"):
    db_path = DATABASE_URL.replace("sqlite:///", "")
    db_dir = os.path.dirname(db_path)
    if db_dir and not os.path.exists(db_dir):
        os.makedirs(db_dir, exist_ok=True)

# Scheduler ticks run on worker threads, so SQLite connections must be shareable
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

if DATABASE_URL.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# Create tables
Base.metadata.create_all(engine)
logger.info(f"Tables created: {list(Base.metadata.tables.keys())}")
