import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from modules.certificates.services.errors import (
    AlreadyResolvedError, AuthorizationError, CertificateError, DuplicateDepartmentError,
    MissingSignatureError, NotFoundError, PendingDuesError, PreconditionError
)

logger = logging.getLogger(__name__)

ERROR_STATUS_CODES = {
    PendingDuesError: status.HTTP_409_CONFLICT,
    AuthorizationError: status.HTTP_403_FORBIDDEN,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyResolvedError: status.HTTP_409_CONFLICT,
    MissingSignatureError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    PreconditionError: status.HTTP_409_CONFLICT,
    DuplicateDepartmentError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def certificate_error_handler(request: Request, exc: CertificateError) -> JSONResponse:
    status_code = ERROR_STATUS_CODES.get(type(exc), status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("Consistency failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )
