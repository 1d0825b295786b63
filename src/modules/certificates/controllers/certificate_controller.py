from typing import List

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from modules.auth.dependencies import get_current_actor
from modules.certificates.schemas import (
    CertificateResponse, CertificateSummary, DepartmentResponse, EligibilityResponse, StudentResponse
)
from modules.certificates.services.certificate_service import CertificateService
from modules.certificates.services.identity import IdentityContext

router = APIRouter(tags=["certificates"])


def get_certificate_service(db: Session = Depends(get_db)) -> CertificateService:
    return CertificateService(db)


@router.get("", response_model=List[CertificateSummary])
def list_certificates(
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """Every certificate for staff, only their own for a student"""
    return [CertificateSummary.model_validate(certificate) for certificate in service.list_certificates(actor)]


@router.get("/departments", response_model=List[DepartmentResponse])
def list_required_departments(service: CertificateService = Depends(get_certificate_service)):
    return [
        DepartmentResponse(code=department.code, display_name=department.display_name)
        for department in service.registry.departments()
    ]


@router.get("/check-eligibility/{student_id}", response_model=EligibilityResponse)
def check_eligibility(
    student_id: int,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    return EligibilityResponse(student_id=student_id, eligible=service.check_eligibility(actor, student_id))


@router.get("/students-with-cleared-dues", response_model=List[StudentResponse])
def list_students_with_cleared_dues(
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    return [StudentResponse.model_validate(student) for student in service.students_with_cleared_dues(actor)]


@router.get("/student/{student_id}", response_model=List[CertificateSummary])
def list_certificates_for_student(
    student_id: int,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    return [
        CertificateSummary.model_validate(certificate)
        for certificate in service.list_certificates_for_student(actor, student_id)
    ]


@router.post("/request", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
def request_own_certificate(
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """A student requests a certificate for themselves"""
    return CertificateResponse.model_validate(service.request_certificate(actor))


@router.post("/request/{roll_number}", response_model=CertificateResponse, status_code=status.HTTP_201_CREATED)
def request_certificate_for_student(
    roll_number: str,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """Staff request a certificate on behalf of a student"""
    return CertificateResponse.model_validate(service.request_certificate(actor, roll_number))


@router.get("/{certificate_id}", response_model=CertificateResponse)
def get_certificate(
    certificate_id: int,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    return CertificateResponse.model_validate(service.get_certificate(actor, certificate_id))


@router.delete("/{certificate_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_certificate(
    certificate_id: int,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    service.delete_certificate(actor, certificate_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{certificate_id}/download")
def download_certificate(
    certificate_id: int,
    actor: IdentityContext = Depends(get_current_actor),
    service: CertificateService = Depends(get_certificate_service)
):
    """Returns the PDF once the principal has signed"""
    data = service.download_certificate(actor, certificate_id)
    return Response(
        content=data,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="no-dues-certificate-{certificate_id}.pdf"'}
    )
