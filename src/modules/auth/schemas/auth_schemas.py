from datetime import datetime
from pydantic import BaseModel, EmailStr
from typing import List, Optional
from modules.certificates.models.user import UserRole


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str
    user_id: int
    user_name: str
    roles: List[UserRole]
    department: Optional[str] = None


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    roles: List[UserRole]
    department: Optional[str] = None
    is_active: bool
    has_e_signature: bool = False
    created_at: datetime

    model_config = {"from_attributes": True}

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            roles=sorted(user.roles, key=lambda role: role.value),
            department=user.department,
            is_active=user.is_active,
            has_e_signature=bool(user.e_signature),
            created_at=user.created_at,
        )
