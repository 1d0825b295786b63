from sqlalchemy import Column, Integer, String, DateTime, Boolean, Enum, ForeignKey, LargeBinary
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from database import Base, utcnow


class CertificateStatus(PyEnum):
    PENDING = "PENDING"
    PARTIAL = "PARTIAL"
    ALLSIGNED = "ALLSIGNED"
    COMPLETE = "COMPLETE"
    REJECTED = "REJECTED"


class Certificate(Base):
    __tablename__ = 'certificates'

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('students.id'), nullable=False, index=True)

    # Snapshot of the student at request time
    student_name = Column(String, nullable=False)
    student_roll_number = Column(String(32), nullable=False)
    branch = Column(String(64), nullable=True)
    semester = Column(Integer, nullable=True)
    email = Column(String, nullable=True)
    mobile_number = Column(String(32), nullable=True)
    computer_code = Column(String(32), nullable=True)

    certificate_number = Column(String(64), unique=True, nullable=False)
    # Written only by CertificateStateMachine
    status = Column(Enum(CertificateStatus), nullable=False, default=CertificateStatus.PENDING)

    principal_signed = Column(Boolean, nullable=False, default=False)
    principal_signed_by = Column(String, nullable=True)
    principal_signed_by_id = Column(Integer, ForeignKey('users.id'), nullable=True)
    principal_signed_at = Column(DateTime, nullable=True)
    principal_e_signature = Column(LargeBinary, nullable=True)

    issue_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    student = relationship("Student", back_populates="certificates")

    signatures = relationship(
        "SignatureRecord",
        back_populates="certificate",
        order_by="SignatureRecord.position",
        cascade="all, delete-orphan"
    )
