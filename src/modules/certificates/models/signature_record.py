from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, LargeBinary, UniqueConstraint
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from database import Base, utcnow


class SignatureStatus(PyEnum):
    PENDING = "PENDING"
    SIGNED = "SIGNED"
    REJECTED = "REJECTED"


class SignatureRecord(Base):
    __tablename__ = "signature_records"
    __table_args__ = (
        UniqueConstraint("certificate_id", "department", name="uq_signature_certificate_department"),
    )

    id = Column(Integer, primary_key=True)
    certificate_id = Column(Integer, ForeignKey("certificates.id", ondelete="CASCADE"), nullable=False)
    department = Column(String(64), nullable=False)
    # Registry order, frozen when the certificate is created
    position = Column(Integer, nullable=False)
    status = Column(Enum(SignatureStatus), nullable=False, default=SignatureStatus.PENDING)

    signed_by_user_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    signed_by_name = Column(String, nullable=True)
    signed_at = Column(DateTime, nullable=True)
    comments = Column(String(1024), nullable=True)
    e_signature = Column(LargeBinary, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    certificate = relationship("Certificate", back_populates="signatures")
