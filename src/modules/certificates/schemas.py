import base64
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, field_validator

from modules.certificates.models.certificate import CertificateStatus
from modules.certificates.models.signature_record import SignatureStatus


def _encode_image(value):
    if isinstance(value, (bytes, bytearray)):
        return base64.b64encode(value).decode("ascii")
    return value


class SignatureRecordResponse(BaseModel):
    id: int
    department: str
    status: SignatureStatus
    signed_by_user_id: Optional[int] = None
    signed_by_name: Optional[str] = None
    signed_at: Optional[datetime] = None
    comments: Optional[str] = None
    e_signature: Optional[str] = None

    model_config = {"from_attributes": True}

    @field_validator("e_signature", mode="before")
    @classmethod
    def encode_signature(cls, value):
        return _encode_image(value)


class CertificateSummary(BaseModel):
    id: int
    student_id: int
    student_name: str
    student_roll_number: str
    certificate_number: str
    status: CertificateStatus
    principal_signed: bool
    issue_date: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class CertificateResponse(CertificateSummary):
    branch: Optional[str] = None
    semester: Optional[int] = None
    email: Optional[str] = None
    mobile_number: Optional[str] = None
    computer_code: Optional[str] = None
    principal_signed_by: Optional[str] = None
    principal_signed_at: Optional[datetime] = None
    principal_e_signature: Optional[str] = None
    signatures: List[SignatureRecordResponse] = []

    @field_validator("principal_e_signature", mode="before")
    @classmethod
    def encode_principal_signature(cls, value):
        return _encode_image(value)


class DepartmentSignRequest(BaseModel):
    department: str
    comments: Optional[str] = None
    use_e_signature: bool = False


class DepartmentRejectRequest(BaseModel):
    department: str
    comments: Optional[str] = None


class SignatureRequestRequest(BaseModel):
    department: str


class PrincipalSignRequest(BaseModel):
    use_e_signature: bool = False


class SignatureRequestResponse(BaseModel):
    certificate_id: int
    department: str
    notified_users: int


class EligibilityResponse(BaseModel):
    student_id: int
    eligible: bool


class DepartmentResponse(BaseModel):
    code: str
    display_name: str


class StudentResponse(BaseModel):
    id: int
    roll_number: str
    name: str
    branch: Optional[str] = None
    semester: Optional[int] = None
    email: Optional[str] = None

    model_config = {"from_attributes": True}
