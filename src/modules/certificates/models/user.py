from sqlalchemy import Column, Integer, String, Enum, DateTime, Boolean, LargeBinary, ForeignKey
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from database import Base, utcnow


class UserRole(PyEnum):
    ADMIN = "ADMIN"
    DEPARTMENT_ADMIN = "DEPARTMENT_ADMIN"
    HOD = "HOD"
    PRINCIPAL = "PRINCIPAL"
    STUDENT = "STUDENT"


class UserRoleAssignment(Base):
    __tablename__ = 'user_roles'

    user_id = Column(Integer, ForeignKey('users.id', ondelete="CASCADE"), primary_key=True)
    role = Column(Enum(UserRole), primary_key=True)

    user = relationship("User", back_populates="role_assignments")


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    # Home department code, e.g. "LIBRARY" for a department admin
    department = Column(String(64), nullable=True)
    e_signature = Column(LargeBinary, nullable=True)

    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    role_assignments = relationship(
        "UserRoleAssignment",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin"
    )

    student = relationship("Student", back_populates="user", uselist=False)

    notifications = relationship(
        "Notification",
        back_populates="user",
        cascade="all, delete-orphan"
    )

    @property
    def roles(self) -> frozenset:
        return frozenset(assignment.role for assignment in self.role_assignments)

    def has_role(self, role: UserRole) -> bool:
        return role in self.roles
