# create_tables.py
import logging

from database import engine, Base
# Import every model so it registers with Base
from modules.certificates.models import User, UserRoleAssignment, Student, Due, Certificate, SignatureRecord
from modules.notifications.models.notification import Notification

logger = logging.getLogger(__name__)


def create_tables(bind=None):
    """Creates every table in the database"""
    bind = bind or engine
    logger.info("Tables to create: %s", list(Base.metadata.tables.keys()))
    Base.metadata.create_all(bind=bind)


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    create_tables()
