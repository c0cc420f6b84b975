"""
Database initialization helpers
"""
import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.security import hash_password
from app.models.employee import Employee, Role

logger = logging.getLogger(__name__)

INITIAL_ADMIN_EMP_CODE = "ADM-001"


def ensure_initial_admin(db: Session) -> Optional[Employee]:
    """
    Create the initial admin user if no admin exists yet

    Returns:
        The created admin, or None when one already existed
    """
    admin_exists = db.query(Employee).filter(
        (Employee.emp_code == INITIAL_ADMIN_EMP_CODE) | (Employee.role == Role.ADMIN.value)
    ).first()
    if admin_exists:
        logger.info("Admin user already exists, skipping initial bootstrap")
        return None

    admin = Employee(
        emp_code=INITIAL_ADMIN_EMP_CODE,
        name="System Administrator",
        email=settings.INITIAL_ADMIN_EMAIL,
        role=Role.ADMIN.value,
        password_hash=hash_password(settings.INITIAL_ADMIN_PASSWORD),
        join_date=date.today(),
        active=True,
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)

    logger.info("Initial admin user created: emp_code=%s", INITIAL_ADMIN_EMP_CODE)
    logger.info("Password: [set via INITIAL_ADMIN_PASSWORD environment variable]")
    return admin
