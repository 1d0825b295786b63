class CertificateError(Exception):
    """Base exception for the certificate workflow"""
    pass


class PendingDuesError(CertificateError):
    """Certificate requested while the student still has outstanding dues"""
    pass


class AuthorizationError(CertificateError):
    """Actor lacks permission for the requested action"""
    pass


class NotFoundError(CertificateError):
    """Certificate, student or signature record does not exist"""
    pass


class DuplicateDepartmentError(CertificateError):
    """The same department was seeded twice on one certificate"""
    pass


class AlreadyResolvedError(CertificateError):
    """Sign or reject attempted on a record that already left PENDING"""
    pass


class MissingSignatureError(CertificateError):
    """E-signature requested but the actor has none on file"""
    pass


class PreconditionError(CertificateError):
    """Operation not valid for the certificate's current state"""
    pass
