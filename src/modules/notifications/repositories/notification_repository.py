from typing import List, Dict, Optional
from sqlalchemy import update
from sqlalchemy.orm import Session

from modules.notifications.models.notification import Notification


class NotificationRepository:
    def __init__(self, db_session: Session):
        self.db = db_session

    def add(self, notification: Notification) -> Notification:
        """Stages a notification; the caller's transaction commits it"""
        self.db.add(notification)
        self.db.flush()
        return notification

    def find_by_user_id(self, user_id: int) -> List[Notification]:
        return (
            self.db
            .query(Notification)
            .filter(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .all()
        )

    def update(self, notification_id: int, user_id: int, data: Dict) -> Optional[Notification]:
        notif = self.db.get(Notification, notification_id)
        if not notif or notif.user_id != user_id:
            return None
        for field, value in data.items():
            setattr(notif, field, value)
        self.db.commit()
        self.db.refresh(notif)
        return notif

    def detach_certificate(self, certificate_id: int) -> None:
        self.db.execute(
            update(Notification)
            .where(Notification.certificate_id == certificate_id)
            .values(certificate_id=None)
            .execution_options(synchronize_session=False)
        )
