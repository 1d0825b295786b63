from sqlalchemy import Column, Integer, String, DateTime, Date, Enum, ForeignKey, Numeric
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from database import Base, utcnow


class DueStatus(PyEnum):
    PENDING = "PENDING"
    PAID = "PAID"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


# A due only stops blocking a certificate once the department approves the payment
CLEARED_DUE_STATUSES = (DueStatus.APPROVED,)


class Due(Base):
    __tablename__ = 'dues'

    id = Column(Integer, primary_key=True)
    student_id = Column(Integer, ForeignKey('students.id'), nullable=False, index=True)
    department = Column(String(64), nullable=False)
    description = Column(String(512), nullable=True)
    amount = Column(Numeric(10, 2), nullable=False, default=0)
    due_date = Column(Date, nullable=True)
    payment_status = Column(Enum(DueStatus), nullable=False, default=DueStatus.PENDING)
    created_at = Column(DateTime, default=utcnow)

    student = relationship("Student", back_populates="dues")
