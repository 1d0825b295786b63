"""
Authorization rules for the certificate workflow.

Every action is an explicit allow-list; an action with no rule is denied.
"""
from enum import Enum
from typing import Callable, Dict, Optional

from modules.certificates.models.department import HOD_DEPARTMENT
from modules.certificates.models.user import UserRole
from modules.certificates.services.errors import AuthorizationError
from modules.certificates.services.identity import IdentityContext


class Action(Enum):
    SIGN = "sign"
    REJECT = "reject"
    REQUEST_SIGNATURE = "request_signature"
    SIGN_PRINCIPAL = "sign_principal"
    REQUEST_CERTIFICATE = "request_certificate"
    VIEW_CERTIFICATE = "view_certificate"
    DELETE_CERTIFICATE = "delete_certificate"
    CHECK_ELIGIBILITY = "check_eligibility"
    VIEW_STUDENTS = "view_students"


def _can_sign_department(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    if department is None:
        return False
    if actor.has_role(UserRole.ADMIN):
        return True
    if actor.has_role(UserRole.DEPARTMENT_ADMIN) and actor.home_department == department:
        return True
    return actor.has_role(UserRole.HOD) and department == HOD_DEPARTMENT


def _can_request_signature(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    # An HOD cannot request a signature from itself
    return (
        actor.has_role(UserRole.HOD)
        and department is not None
        and department != HOD_DEPARTMENT
    )


def _can_sign_principal(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    return actor.has_role(UserRole.ADMIN) or actor.has_role(UserRole.PRINCIPAL)


def _is_subject_or_privileged(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    if actor.is_privileged:
        return True
    return (
        actor.has_role(UserRole.STUDENT)
        and subject_user_id is not None
        and subject_user_id == actor.user_id
    )


def _is_privileged(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    return actor.is_privileged


def _can_delete_certificate(actor: IdentityContext, department: Optional[str], subject_user_id: Optional[int]) -> bool:
    return actor.has_role(UserRole.ADMIN)


RULES: Dict[Action, Callable[[IdentityContext, Optional[str], Optional[int]], bool]] = {
    Action.SIGN: _can_sign_department,
    Action.REJECT: _can_sign_department,
    Action.REQUEST_SIGNATURE: _can_request_signature,
    Action.SIGN_PRINCIPAL: _can_sign_principal,
    Action.REQUEST_CERTIFICATE: _is_subject_or_privileged,
    Action.VIEW_CERTIFICATE: _is_subject_or_privileged,
    Action.DELETE_CERTIFICATE: _can_delete_certificate,
    Action.CHECK_ELIGIBILITY: _is_subject_or_privileged,
    Action.VIEW_STUDENTS: _is_privileged,
}


def can_perform_action(actor: IdentityContext, action: Action,
                       department: Optional[str] = None,
                       subject_user_id: Optional[int] = None) -> bool:
    """
    department: target department code for department-level actions.
    subject_user_id: user id of the student the certificate belongs to.
    """
    rule = RULES.get(action)
    if rule is None:
        return False
    return rule(actor, department, subject_user_id)


def authorize(actor: IdentityContext, action: Action,
              department: Optional[str] = None,
              subject_user_id: Optional[int] = None) -> None:
    if not can_perform_action(actor, action, department, subject_user_id):
        target = f" for department {department}" if department else ""
        raise AuthorizationError(
            f"User {actor.user_id} with roles {sorted(role.value for role in actor.roles)} "
            f"cannot perform '{action.value}'{target}"
        )
