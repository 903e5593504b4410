from .incident import Incident, IncidentStatus
from .monitor import Monitor
from .monitor_check import CheckStatus, MonitorCheck
from .notification import Notification, NotificationStatus, NotificationType
from .settings import Settings
from .user import User

__all__ = [
    "CheckStatus",
    "Incident",
    "IncidentStatus",
    "Monitor",
    "MonitorCheck",
    "Notification",
    "NotificationStatus",
    "NotificationType",
    "Settings",
    "User",
]
