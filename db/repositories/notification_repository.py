from db.models import Notification, NotificationStatus
from db.repositories.base_repository import BaseRepository
from datetime import datetime


class NotificationRepository(BaseRepository):
    def create(self, notification: Notification) -> Notification:
        self.db.add(notification)
        self.db.commit()
        self.db.refresh(notification)
        return notification

    def mark_sent(self, notification: Notification, sent_at: datetime) -> Notification:
        notification.status = NotificationStatus.SENT
        notification.sent_at = sent_at
        self.db.commit()
        return notification

    def mark_failed(self, notification: Notification, error_message: str) -> Notification:
        notification.status = NotificationStatus.FAILED
        notification.error_message = error_message
        self.db.commit()
        return notification

    def list_by_monitor(self, monitor_id: int) -> list[Notification]:
        return (
            self.db.query(Notification)
            .filter(Notification.monitor_id == monitor_id)
            .order_by(Notification.id)
            .all()
        )
