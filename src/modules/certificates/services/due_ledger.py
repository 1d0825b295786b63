from typing import List

from sqlalchemy import select, exists
from sqlalchemy.orm import Session

from modules.certificates.models.due import Due, CLEARED_DUE_STATUSES
from modules.certificates.models.student import Student


class DueLedger:
    """Read side of the dues module, as consumed by the certificate gate"""

    def __init__(self, session: Session):
        self.session = session

    def has_outstanding_dues(self, student_id: int) -> bool:
        return self.session.scalar(
            select(exists().where(
                Due.student_id == student_id,
                Due.payment_status.not_in(CLEARED_DUE_STATUSES),
            ))
        )

    def outstanding_dues(self, student_id: int) -> List[Due]:
        return list(self.session.scalars(
            select(Due)
            .where(Due.student_id == student_id, Due.payment_status.not_in(CLEARED_DUE_STATUSES))
            .order_by(Due.created_at)
        ))

    def students_with_cleared_dues(self) -> List[Student]:
        """Students with no due outside the cleared statuses, including those with no dues at all"""
        return list(self.session.scalars(
            select(Student)
            .where(~exists().where(
                Due.student_id == Student.id,
                Due.payment_status.not_in(CLEARED_DUE_STATUSES),
            ))
            .order_by(Student.roll_number)
        ))
