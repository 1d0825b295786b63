from dataclasses import dataclass, field
from typing import FrozenSet, Optional

from modules.certificates.models.user import User, UserRole

PRIVILEGED_ROLES = frozenset({
    UserRole.ADMIN,
    UserRole.DEPARTMENT_ADMIN,
    UserRole.HOD,
    UserRole.PRINCIPAL,
})


@dataclass(frozen=True)
class IdentityContext:
    """The acting user, passed explicitly into every CertificateService call"""
    user_id: int
    name: str = ""
    roles: FrozenSet[UserRole] = field(default_factory=frozenset)
    home_department: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "IdentityContext":
        return cls(
            user_id=user.id,
            name=user.name,
            roles=user.roles,
            home_department=user.department,
        )

    def has_role(self, role: UserRole) -> bool:
        return role in self.roles

    @property
    def is_privileged(self) -> bool:
        return bool(self.roles & PRIVILEGED_ROLES)
