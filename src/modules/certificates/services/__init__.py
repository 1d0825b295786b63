from .certificate_service import CertificateService
from .certificate_state_service import CertificateStateMachine
from .signature_ledger import SignatureLedger
from .identity import IdentityContext

__all__ = ['CertificateService', 'CertificateStateMachine', 'SignatureLedger', 'IdentityContext']
