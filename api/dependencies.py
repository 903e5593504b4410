# api/dependencies.py
from fastapi import Depends, Request, HTTPException, status
from db.engine import SessionLocal
from sqlalchemy.orm import Session
from db.repositories.monitor_repository import MonitorRepository
from db.repositories.check_repository import CheckRepository
from db.repositories.incident_repository import IncidentRepository
from db.repositories.user_repository import UserRepository
from db.models.user import User
from api.services.monitor_service import MonitorService
from api.services.monitoring_service import MonitoringService
from api.services.user_service import UserService, UserServiceException


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_monitor_service(db: Session = Depends(get_db)):
    return MonitorService(MonitorRepository(db), CheckRepository(db), IncidentRepository(db))


def get_user_service(db: Session = Depends(get_db)):
    return UserService(UserRepository(db))


def get_monitoring_service(request: Request) -> MonitoringService:
    monitoring_service = getattr(request.app.state, "monitoring_service", None)
    if monitoring_service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Monitoring service is not available",
        )
    return monitoring_service


async def get_current_user(
    request: Request,
    user_service: UserService = Depends(get_user_service),
):
    try:
        return await user_service.get_current_user_from_request(request)
    except UserServiceException as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


async def require_admin(current_user: User = Depends(get_current_user)):
    """Dependency to ensure user is an admin"""
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator privileges required",
        )
    return current_user
