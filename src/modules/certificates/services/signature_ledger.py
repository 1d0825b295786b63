import logging
from database import utcnow
from typing import Iterable, List, Optional

from sqlalchemy import select, update, delete
from sqlalchemy.orm import Session

from modules.certificates.models.certificate import CertificateStatus
from modules.certificates.models.signature_record import SignatureRecord, SignatureStatus
from modules.certificates.services.errors import (
    AlreadyResolvedError, DuplicateDepartmentError, NotFoundError
)

logger = logging.getLogger(__name__)


def aggregate_from_statuses(statuses: Iterable[SignatureStatus]) -> CertificateStatus:
    """
    Rejection dominates; an empty ledger counts as fully signed.
    """
    statuses = list(statuses)
    if any(status == SignatureStatus.REJECTED for status in statuses):
        return CertificateStatus.REJECTED
    if all(status == SignatureStatus.SIGNED for status in statuses):
        return CertificateStatus.ALLSIGNED
    if all(status == SignatureStatus.PENDING for status in statuses):
        return CertificateStatus.PENDING
    return CertificateStatus.PARTIAL


class SignatureLedger:
    """Per-department signature rows of a certificate. Never commits."""

    def __init__(self, session: Session):
        self.session = session

    def initialize(self, certificate_id: int, departments: List[str]) -> List[SignatureRecord]:
        seen = set()
        for code in departments:
            if code in seen:
                raise DuplicateDepartmentError(
                    f"Department {code} listed twice for certificate {certificate_id}"
                )
            seen.add(code)

        records = [
            SignatureRecord(
                certificate_id=certificate_id,
                department=code,
                position=position,
                status=SignatureStatus.PENDING,
            )
            for position, code in enumerate(departments)
        ]
        self.session.add_all(records)
        self.session.flush()
        return records

    def sign(self, certificate_id: int, department: str, signer_id: int, signer_name: str,
             comments: Optional[str] = None, signature_image: Optional[bytes] = None) -> SignatureRecord:
        return self._resolve(
            certificate_id, department, SignatureStatus.SIGNED,
            signed_by_user_id=signer_id,
            signed_by_name=signer_name,
            comments=comments,
            e_signature=signature_image,
        )

    def reject(self, certificate_id: int, department: str, signer_id: int,
               comments: Optional[str] = None, signer_name: Optional[str] = None) -> SignatureRecord:
        return self._resolve(
            certificate_id, department, SignatureStatus.REJECTED,
            signed_by_user_id=signer_id,
            signed_by_name=signer_name,
            comments=comments,
        )

    def _resolve(self, certificate_id: int, department: str, new_status: SignatureStatus,
                 **values) -> SignatureRecord:
        # Conditional update: of two racing calls only one matches the PENDING row
        result = self.session.execute(
            update(SignatureRecord)
            .where(
                SignatureRecord.certificate_id == certificate_id,
                SignatureRecord.department == department,
                SignatureRecord.status == SignatureStatus.PENDING,
            )
            .values(status=new_status, signed_at=utcnow(), **values)
            .execution_options(synchronize_session=False)
        )

        record = self._find(certificate_id, department)
        if record is None:
            raise NotFoundError(
                f"No signature record for department {department} on certificate {certificate_id}"
            )

        if result.rowcount == 0:
            raise AlreadyResolvedError(
                f"Department {department} already {record.status.value.lower()} "
                f"certificate {certificate_id}"
            )

        logger.info("Certificate %s: %s -> %s by user %s",
                    certificate_id, department, new_status.value, values.get("signed_by_user_id"))
        return record

    def _find(self, certificate_id: int, department: str) -> Optional[SignatureRecord]:
        return self.session.scalars(
            select(SignatureRecord).where(
                SignatureRecord.certificate_id == certificate_id,
                SignatureRecord.department == department,
            ).execution_options(populate_existing=True)
        ).first()

    def get(self, certificate_id: int, department: str) -> SignatureRecord:
        record = self._find(certificate_id, department)
        if record is None:
            raise NotFoundError(
                f"No signature record for department {department} on certificate {certificate_id}"
            )
        return record

    def aggregate_state(self, certificate_id: int) -> CertificateStatus:
        statuses = self.session.scalars(
            select(SignatureRecord.status).where(SignatureRecord.certificate_id == certificate_id)
        ).all()
        return aggregate_from_statuses(statuses)

    def records_for(self, certificate_id: int) -> List[SignatureRecord]:
        return list(self.session.scalars(
            select(SignatureRecord)
            .where(SignatureRecord.certificate_id == certificate_id)
            .order_by(SignatureRecord.position)
        ))

    def delete_for(self, certificate_id: int) -> int:
        result = self.session.execute(
            delete(SignatureRecord)
            .where(SignatureRecord.certificate_id == certificate_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount
