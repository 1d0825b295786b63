from .user import User, UserRole, UserRoleAssignment
from .student import Student
from .due import Due, DueStatus
from .certificate import Certificate, CertificateStatus
from .signature_record import SignatureRecord, SignatureStatus
from .department import Department, DepartmentRegistry, HOD_DEPARTMENT, get_department_name

__all__ = [
    'User', 'UserRole', 'UserRoleAssignment', 'Student', 'Due', 'DueStatus',
    'Certificate', 'CertificateStatus', 'SignatureRecord', 'SignatureStatus',
    'Department', 'DepartmentRegistry', 'HOD_DEPARTMENT', 'get_department_name'
]
