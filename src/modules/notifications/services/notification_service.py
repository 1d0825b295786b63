# modules/notifications/services/notification_service.py
from typing import List, Optional

from modules.certificates.models.department import get_department_name
from modules.notifications.models.notification import Notification
from modules.notifications.repositories.notification_repository import NotificationRepository


class NotificationTemplate:
    def __init__(self, user_id: int, title: str, message: str, certificate_id: Optional[int] = None):
        self.user_id = user_id
        self.title = title
        self.message = message
        self.certificate_id = certificate_id

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'title': self.title,
            'message': self.message,
            'certificate_id': self.certificate_id
        }


class CertificateStatusNotification(NotificationTemplate):
    def __init__(self, user_id: int, certificate_id: int, certificate_number: str, new_status: str):
        readable_statuses = {
            'PENDING': 'Pending department signatures',
            'PARTIAL': 'Partially signed',
            'ALLSIGNED': 'Signed by all departments, awaiting the Principal',
            'COMPLETE': 'Complete and ready to download',
            'REJECTED': 'Rejected'
        }
        title = "No Dues Certificate status changed"
        status_human = readable_statuses.get(new_status, new_status)
        message = f"Certificate '{certificate_number}' is now: '{status_human}'."
        super().__init__(user_id, title, message, certificate_id)


class SignatureRequestNotification(NotificationTemplate):
    def __init__(self, user_id: int, certificate_id: int, certificate_number: str,
                 department: str, student_name: str, requested_by: str):
        title = "Signature requested"
        message = (
            f"{requested_by} requested the {get_department_name(department)} signature "
            f"on certificate '{certificate_number}' for {student_name}."
        )
        super().__init__(user_id, title, message, certificate_id)


class NotificationService:
    def __init__(self, repository: NotificationRepository):
        self.notification_repository = repository

    def _create(self, template: NotificationTemplate) -> Notification:
        notif = Notification(**template.to_dict())
        return self.notification_repository.add(notif)

    def create_certificate_status_notification(
        self,
        user_id: int,
        certificate_id: int,
        certificate_number: str,
        new_status: str
    ) -> Notification:
        return self._create(
            CertificateStatusNotification(user_id, certificate_id, certificate_number, new_status)
        )

    def create_signature_request_notification(
        self,
        user_id: int,
        certificate_id: int,
        certificate_number: str,
        department: str,
        student_name: str,
        requested_by: str
    ) -> Notification:
        return self._create(SignatureRequestNotification(
            user_id, certificate_id, certificate_number, department, student_name, requested_by
        ))

    def get_notifications(self, user_id: int) -> List[Notification]:
        return self.notification_repository.find_by_user_id(user_id)

    def mark_as_read(self, notification_id: int, user_id: int) -> Optional[Notification]:
        return self.notification_repository.update(notification_id, user_id, {'read': True})
