from fastapi import Depends

from modules.auth.controllers.auth_controller import get_current_user
from modules.certificates.models.user import User
from modules.certificates.services.identity import IdentityContext


def get_current_actor(current_user: User = Depends(get_current_user)) -> IdentityContext:
    """Identity handed explicitly to every certificate operation"""
    return IdentityContext.from_user(current_user)
