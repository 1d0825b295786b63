import logging
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import settings
from logging_config import setup_logging
from create_tables import create_tables
from database import SessionLocal

from modules.certificates.models import Student, User, UserRole, UserRoleAssignment
from modules.certificates.services.errors import CertificateError
from modules.auth.services.auth_service import AuthService
from modules.certificates.controllers.error_handlers import certificate_error_handler
from modules.notifications.controllers.notification_controller import router as notification_router
from modules.certificates.controllers.certificate_controller import router as certificate_router
from modules.certificates.controllers.signature_controller import router as signature_router
from modules.auth.controllers.auth_controller import router as auth_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup logic ---
    setup_logging()
    logger.info("Starting %s", settings.APP_NAME)
    create_tables()
    if settings.SEED_DEMO_DATA:
        _seed_demo_data()
    yield
    # --- Shutdown logic ---
    logger.info("Application stopped")


def _user(name, email, password, roles, department=None):
    return User(
        name=name,
        email=email,
        password_hash=AuthService.get_password_hash(password),
        department=department,
        is_active=True,
        role_assignments=[UserRoleAssignment(role=role) for role in roles]
    )


def _seed_demo_data():
    """Creates demo users, one per role, and a student."""
    with SessionLocal() as session:
        if session.query(User).count() > 0:
            logger.info("Demo data already present")
            return

        admin = _user("Admin", "admin@college.edu", "admin123", [UserRole.ADMIN])
        principal = _user("Principal", "principal@college.edu", "principal123", [UserRole.PRINCIPAL])
        hod = _user("Head of Department", "hod@college.edu", "hod123", [UserRole.HOD], "CSE")
        librarian = _user("Librarian", "library@college.edu", "library123",
                          [UserRole.DEPARTMENT_ADMIN], "LIBRARY")
        student_user = _user("Asha Verma", "asha@college.edu", "asha123", [UserRole.STUDENT], "CSE")
        student = Student(
            user=student_user,
            roll_number="0101CS201001",
            name=student_user.name,
            branch="CSE",
            semester=8,
            email=student_user.email,
            mobile_number="9000000000",
        )
        session.add_all([admin, principal, hod, librarian, student_user, student])
        session.commit()

        logger.info("Demo users created: %s",
                    ", ".join(u.email for u in (admin, principal, hod, librarian, student_user)))


app = FastAPI(
    title=settings.APP_NAME,
    description="Multi-department approval workflow for No Dues Certificates",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=[
        "Accept",
        "Accept-Language",
        "Content-Language",
        "Content-Type",
        "Authorization",
        "X-Requested-With",
        "Origin",
    ],
    max_age=86400,
)

app.add_exception_handler(CertificateError, certificate_error_handler)

# Routers
app.include_router(auth_router)
app.include_router(notification_router, prefix="/notifications", tags=["notifications"])
app.include_router(certificate_router, prefix="/certificates")
app.include_router(signature_router, prefix="/certificates")

if __name__ == "__main__":
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
