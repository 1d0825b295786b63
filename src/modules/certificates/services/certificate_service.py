import logging
import uuid
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from config import settings
from database import utcnow
from modules.certificates.models.certificate import Certificate, CertificateStatus
from modules.certificates.models.department import DepartmentRegistry
from modules.certificates.models.signature_record import SignatureStatus
from modules.certificates.models.student import Student
from modules.certificates.services.certificate_pdf import render_certificate_pdf
from modules.certificates.services.certificate_state_service import CertificateStateMachine
from modules.certificates.services.due_ledger import DueLedger
from modules.certificates.services.errors import (
    AlreadyResolvedError, AuthorizationError, MissingSignatureError,
    NotFoundError, PendingDuesError, PreconditionError
)
from modules.certificates.services.identity import IdentityContext
from modules.certificates.services.permission import Action, authorize
from modules.certificates.services.signature_ledger import SignatureLedger
from modules.certificates.services.user_directory import UserDirectory
from modules.notifications.models.notification import Notification
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.notification_service import NotificationService

logger = logging.getLogger(__name__)


def generate_certificate_number(prefix: Optional[str] = None) -> str:
    prefix = prefix or settings.CERTIFICATE_NUMBER_PREFIX
    return f"{prefix}-{utcnow():%Y}-{uuid.uuid4().hex[:12].upper()}"


class CertificateService:
    """
    Single entry point for every certificate mutation. Each write runs as one
    transaction: ledger change, status recomputation and notifications commit
    together or not at all.
    """

    def __init__(self, session: Session, registry: Optional[DepartmentRegistry] = None,
                 due_ledger: Optional[DueLedger] = None,
                 directory: Optional[UserDirectory] = None):
        self.session = session
        self.registry = registry if registry is not None else DepartmentRegistry.from_settings(settings)
        self.due_ledger = due_ledger if due_ledger is not None else DueLedger(session)
        self.directory = directory if directory is not None else UserDirectory(session)
        self.ledger = SignatureLedger(session)
        self.state_machine = CertificateStateMachine(session, self.ledger)
        self.notifications = NotificationService(NotificationRepository(session))

    @contextmanager
    def _transaction(self):
        try:
            yield
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    # ---- writes ----

    def request_certificate(self, actor: IdentityContext, roll_number: Optional[str] = None) -> Certificate:
        """
        Students request for themselves (no roll number); privileged users
        request on behalf of the student with the given roll number.
        """
        with self._transaction():
            if roll_number is None:
                student = self.directory.get_student_for_user(actor.user_id)
            else:
                student = self.directory.get_student_by_roll_number(roll_number)

            if self.due_ledger.has_outstanding_dues(student.id):
                logger.warning("Certificate refused for student %s: outstanding dues", student.roll_number)
                raise PendingDuesError(
                    f"Student {student.roll_number} has pending dues; clear them before requesting a certificate"
                )

            self._authorize(actor, Action.REQUEST_CERTIFICATE, subject_user_id=student.user_id)

            certificate = self.state_machine.create(
                student,
                self.registry.list_required_departments(),
                generate_certificate_number(),
            )
            self._notify_student(student, certificate)

        logger.info("Certificate %s (%s) created for student %s by user %s",
                    certificate.id, certificate.certificate_number, student.roll_number, actor.user_id)
        return certificate

    def sign_department(self, actor: IdentityContext, certificate_id: int, department: str,
                        comments: Optional[str] = None, use_e_signature: bool = False) -> Certificate:
        with self._transaction():
            self._authorize(actor, Action.SIGN, department=department)
            certificate = self.state_machine.get_for_update(certificate_id)
            previous = certificate.status

            signature_image = self._signature_image(actor) if use_e_signature else None
            self.ledger.sign(certificate_id, department, actor.user_id, actor.name,
                             comments, signature_image)
            certificate = self.state_machine.apply_signature_mutation(certificate_id)
            self._notify_if_changed(certificate, previous)
        return certificate

    def reject_department(self, actor: IdentityContext, certificate_id: int, department: str,
                          comments: Optional[str] = None) -> Certificate:
        with self._transaction():
            self._authorize(actor, Action.REJECT, department=department)
            certificate = self.state_machine.get_for_update(certificate_id)
            previous = certificate.status

            self.ledger.reject(certificate_id, department, actor.user_id, comments, actor.name)
            certificate = self.state_machine.apply_signature_mutation(certificate_id)
            self._notify_if_changed(certificate, previous)
        return certificate

    def sign_principal(self, actor: IdentityContext, certificate_id: int,
                       use_e_signature: bool = False) -> Certificate:
        with self._transaction():
            self._authorize(actor, Action.SIGN_PRINCIPAL)
            certificate = self.state_machine.get_for_update(certificate_id)
            previous = certificate.status

            signature_image = self._signature_image(actor) if use_e_signature else None
            certificate = self.state_machine.sign_as_principal(
                certificate_id, actor.user_id, actor.name, signature_image
            )
            self._notify_if_changed(certificate, previous)
        return certificate

    def request_signature(self, actor: IdentityContext, certificate_id: int, department: str) -> List[Notification]:
        """Notifies the admins of a department that their signature is awaited"""
        with self._transaction():
            self._authorize(actor, Action.REQUEST_SIGNATURE, department=department)
            certificate = self.state_machine.get(certificate_id)
            record = self.ledger.get(certificate_id, department)
            if record.status != SignatureStatus.PENDING:
                raise AlreadyResolvedError(
                    f"Department {department} already {record.status.value.lower()} certificate {certificate_id}"
                )

            sent = [
                self.notifications.create_signature_request_notification(
                    user_id=admin.id,
                    certificate_id=certificate.id,
                    certificate_number=certificate.certificate_number,
                    department=department,
                    student_name=certificate.student_name,
                    requested_by=actor.name or f"User {actor.user_id}",
                )
                for admin in self.directory.department_admins(department)
            ]

        logger.info("Signature of %s requested on certificate %s by user %s (%d recipients)",
                    department, certificate_id, actor.user_id, len(sent))
        return sent

    def delete_certificate(self, actor: IdentityContext, certificate_id: int) -> None:
        with self._transaction():
            self._authorize(actor, Action.DELETE_CERTIFICATE)
            certificate = self.state_machine.get_for_update(certificate_id)

            removed = self.ledger.delete_for(certificate_id)
            self.notifications.notification_repository.detach_certificate(certificate_id)
            self.session.expire(certificate, ["signatures"])
            self.session.delete(certificate)

        logger.info("Certificate %s deleted by user %s (%d signature records)",
                    certificate_id, actor.user_id, removed)

    # ---- reads ----

    def get_certificate(self, actor: IdentityContext, certificate_id: int) -> Certificate:
        certificate = self.state_machine.get(certificate_id)
        self._authorize(actor, Action.VIEW_CERTIFICATE, subject_user_id=certificate.student.user_id)
        return certificate

    def list_certificates(self, actor: IdentityContext) -> List[Certificate]:
        query = select(Certificate).order_by(Certificate.created_at.desc(), Certificate.id.desc())
        if not actor.is_privileged:
            query = query.join(Student).where(Student.user_id == actor.user_id)
        return list(self.session.scalars(query))

    def list_certificates_for_student(self, actor: IdentityContext, student_id: int) -> List[Certificate]:
        student = self._require_student(student_id)
        self._authorize(actor, Action.VIEW_CERTIFICATE, subject_user_id=student.user_id)
        return list(self.session.scalars(
            select(Certificate)
            .where(Certificate.student_id == student_id)
            .order_by(Certificate.created_at.desc(), Certificate.id.desc())
        ))

    def students_with_cleared_dues(self, actor: IdentityContext) -> List[Student]:
        self._authorize(actor, Action.VIEW_STUDENTS)
        return self.due_ledger.students_with_cleared_dues()

    def check_eligibility(self, actor: IdentityContext, student_id: int) -> bool:
        student = self._require_student(student_id)
        self._authorize(actor, Action.CHECK_ELIGIBILITY, subject_user_id=student.user_id)
        return not self.due_ledger.has_outstanding_dues(student_id)

    def download_certificate(self, actor: IdentityContext, certificate_id: int) -> bytes:
        certificate = self.get_certificate(actor, certificate_id)
        if certificate.status != CertificateStatus.COMPLETE:
            raise PreconditionError(
                f"Certificate {certificate_id} is {certificate.status.value}; only COMPLETE certificates can be downloaded"
            )
        return render_certificate_pdf(certificate)

    # ---- helpers ----

    def _authorize(self, actor: IdentityContext, action: Action,
                   department: Optional[str] = None, subject_user_id: Optional[int] = None) -> None:
        try:
            authorize(actor, action, department=department, subject_user_id=subject_user_id)
        except AuthorizationError as e:
            logger.warning("Denied: %s", e)
            raise

    def _require_student(self, student_id: int) -> Student:
        student = self.directory.get_student(student_id)
        if student is None:
            raise NotFoundError(f"Student {student_id} not found")
        return student

    def _signature_image(self, actor: IdentityContext) -> bytes:
        if not self.directory.has_stored_signature(actor.user_id):
            raise MissingSignatureError(
                f"User {actor.user_id} has no e-signature on file; upload one in the profile first"
            )
        return self.directory.get_signature_image(actor.user_id)

    def _notify_student(self, student: Student, certificate: Certificate) -> None:
        if student.user_id is None:
            return
        self.notifications.create_certificate_status_notification(
            user_id=student.user_id,
            certificate_id=certificate.id,
            certificate_number=certificate.certificate_number,
            new_status=certificate.status.value,
        )

    def _notify_if_changed(self, certificate: Certificate, previous: CertificateStatus) -> None:
        if certificate.status != previous:
            self._notify_student(certificate.student, certificate)

