# src/modules/certificates/controllers/signature_controller.py
from fastapi import APIRouter, Depends

from modules.auth.dependencies import get_current_actor
from modules.certificates.controllers.certificate_controller import get_certificate_service
from modules.certificates.schemas import (
    CertificateResponse, DepartmentRejectRequest, DepartmentSignRequest,
    PrincipalSignRequest, SignatureRequestRequest, SignatureRequestResponse
)
from modules.certificates.services.certificate_service import CertificateService
from modules.certificates.services.identity import IdentityContext

router = APIRouter(tags=["certificates"])


@router.post("/{certificate_id}/sign-department", response_model=CertificateResponse)
def sign_department(
    certificate_id: int,
    payload: DepartmentSignRequest,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """Signs off one department; returns the refreshed certificate"""
    certificate = service.sign_department(
        actor, certificate_id, payload.department,
        comments=payload.comments, use_e_signature=payload.use_e_signature
    )
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/reject-department", response_model=CertificateResponse)
def reject_department(
    certificate_id: int,
    payload: DepartmentRejectRequest,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    certificate = service.reject_department(actor, certificate_id, payload.department, comments=payload.comments)
    return CertificateResponse.model_validate(certificate)


@router.post("/{certificate_id}/request-department-signature", response_model=SignatureRequestResponse)
def request_department_signature(
    certificate_id: int,
    payload: SignatureRequestRequest,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """HOD asks a department to sign"""
    sent = service.request_signature(actor, certificate_id, payload.department)
    return SignatureRequestResponse(
        certificate_id=certificate_id,
        department=payload.department,
        notified_users=len(sent)
    )


@router.post("/{certificate_id}/sign-principal", response_model=CertificateResponse)
def sign_principal(
    certificate_id: int,
    payload: PrincipalSignRequest,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    certificate = service.sign_principal(actor, certificate_id, use_e_signature=payload.use_e_signature)
    return CertificateResponse.model_validate(certificate)
