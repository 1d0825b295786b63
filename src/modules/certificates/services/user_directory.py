from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from modules.certificates.models.student import Student
from modules.certificates.models.user import User, UserRole, UserRoleAssignment
from modules.certificates.services.errors import MissingSignatureError, NotFoundError


class UserDirectory:

    def __init__(self, session: Session):
        self.session = session

    def has_stored_signature(self, user_id: int) -> bool:
        user = self.session.get(User, user_id)
        return bool(user and user.e_signature)

    def get_signature_image(self, user_id: int) -> bytes:
        user = self.session.get(User, user_id)
        if not user or not user.e_signature:
            raise MissingSignatureError(
                f"User {user_id} has no e-signature on file; upload one in the profile first"
            )
        return user.e_signature

    def get_student_by_roll_number(self, roll_number: str) -> Student:
        student = self.session.scalars(
            select(Student).where(Student.roll_number == roll_number)
        ).first()
        if student is None:
            raise NotFoundError(f"Student with roll number {roll_number} not found")
        return student

    def get_student_for_user(self, user_id: int) -> Student:
        student = self.session.scalars(
            select(Student).where(Student.user_id == user_id)
        ).first()
        if student is None:
            raise NotFoundError(f"No student record linked to user {user_id}")
        return student

    def get_student(self, student_id: int) -> Optional[Student]:
        return self.session.get(Student, student_id)

    def department_admins(self, department: str) -> List[User]:
        return list(self.session.scalars(
            select(User)
            .join(UserRoleAssignment)
            .where(
                UserRoleAssignment.role == UserRole.DEPARTMENT_ADMIN,
                User.department == department,
                User.is_active.is_(True),
            )
        ))
