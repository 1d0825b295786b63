import logging
from database import utcnow
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.orm import Session

from modules.certificates.models.certificate import Certificate, CertificateStatus
from modules.certificates.models.student import Student
from modules.certificates.services.errors import NotFoundError, PreconditionError
from modules.certificates.services.signature_ledger import SignatureLedger

logger = logging.getLogger(__name__)


class CertificateStateMachine:
    """
    Owns Certificate.status. The status is always derived from the signature
    ledger and the principal flag, never assigned by callers:

        PENDING -> PARTIAL -> ALLSIGNED -> COMPLETE
        PENDING/PARTIAL -> REJECTED (terminal)
    """

    def __init__(self, session: Session, ledger: Optional[SignatureLedger] = None):
        self.session = session
        self.ledger = ledger if ledger is not None else SignatureLedger(session)

    def get(self, certificate_id: int) -> Certificate:
        certificate = self.session.get(Certificate, certificate_id)
        if certificate is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return certificate

    def get_for_update(self, certificate_id: int) -> Certificate:
        """
        Write-path load: locks the certificate row so concurrent signers of
        different departments recompute the status one after another.
        """
        certificate = self.session.get(
            Certificate, certificate_id, with_for_update=True, populate_existing=True
        )
        if certificate is None:
            raise NotFoundError(f"Certificate {certificate_id} not found")
        return certificate

    def create(self, student: Student, departments: List[str], certificate_number: str) -> Certificate:
        certificate = Certificate(
            student_id=student.id,
            student_name=student.name,
            student_roll_number=student.roll_number,
            branch=student.branch,
            semester=student.semester,
            email=student.email,
            mobile_number=student.mobile_number,
            computer_code=student.computer_code,
            certificate_number=certificate_number,
            status=CertificateStatus.PENDING,
            principal_signed=False,
            created_at=utcnow(),
        )
        self.session.add(certificate)
        self.session.flush()

        self.ledger.initialize(certificate.id, departments)
        self.apply_signature_mutation(certificate.id)
        return certificate

    def derive_status(self, certificate: Certificate) -> CertificateStatus:
        if certificate.principal_signed:
            return CertificateStatus.COMPLETE
        return self.ledger.aggregate_state(certificate.id)

    def apply_signature_mutation(self, certificate_id: int) -> Certificate:
        """Recomputes status from the ledger and stages it on the certificate"""
        certificate = self.get(certificate_id)
        previous = certificate.status
        certificate.status = self.derive_status(certificate)
        self.session.flush()

        if previous != certificate.status:
            logger.info("Certificate %s changed from %s to %s",
                        certificate.id, previous.value, certificate.status.value)
        return certificate

    def sign_as_principal(self, certificate_id: int, signer_id: int, signer_name: str,
                          signature_image: Optional[bytes] = None) -> Certificate:
        certificate = self.get_for_update(certificate_id)

        if certificate.principal_signed:
            raise PreconditionError(f"Certificate {certificate_id} is already signed by the principal")

        aggregate = self.ledger.aggregate_state(certificate_id)
        if aggregate != CertificateStatus.ALLSIGNED:
            raise PreconditionError(
                f"All departments must sign before the principal; certificate "
                f"{certificate_id} is {aggregate.value}"
            )

        now = utcnow()
        result = self.session.execute(
            update(Certificate)
            .where(Certificate.id == certificate_id, Certificate.principal_signed.is_(False))
            .values(
                principal_signed=True,
                principal_signed_by=signer_name,
                principal_signed_by_id=signer_id,
                principal_signed_at=now,
                principal_e_signature=signature_image,
                status=CertificateStatus.COMPLETE,
                issue_date=now,
            )
            .execution_options(synchronize_session=False)
        )
        self.session.refresh(certificate)
        if result.rowcount == 0:
            raise PreconditionError(f"Certificate {certificate_id} is already signed by the principal")

        logger.info("Certificate %s signed by principal %s", certificate_id, signer_id)
        return certificate
