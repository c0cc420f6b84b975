"""
Authentication endpoints
"""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.core.deps import get_db
from app.core.errors import ForbiddenError, UnauthenticatedError
from app.core.security import verify_password, create_access_token
from app.models.employee import Employee
from app.schemas.auth import LoginRequest, TokenResponse
from app.services.audit_service import log_audit

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """
    Authenticate user and return JWT token

    Validates emp_code and password, rejects inactive employees.
    Returns access token carrying the employee id (``sub``) and role.
    """
    employee = db.query(Employee).filter(Employee.emp_code == login_data.emp_code).first()

    if not employee:
        raise UnauthenticatedError("Invalid employee code or password")

    if not employee.active:
        raise ForbiddenError("Account is inactive")

    if employee.password_hash is None:
        raise UnauthenticatedError("No password set for this account")

    if not verify_password(login_data.password, employee.password_hash):
        raise UnauthenticatedError("Invalid employee code or password")

    # JWT 'sub' claim must be a string
    token_data = {
        "sub": str(employee.id),
        "emp_code": employee.emp_code,
        "role": employee.role,
    }
    access_token = create_access_token(data=token_data)

    log_audit(
        db=db,
        actor_id=employee.id,
        action="AUTH_LOGIN_SUCCESS",
        entity_type="auth",
        meta={"emp_code": employee.emp_code, "role": employee.role}
    )
    logger.info("login: employee_id=%s role=%s", employee.id, employee.role)

    return TokenResponse(
        access_token=access_token,
        employee_id=employee.id,
        emp_code=employee.emp_code,
        role=employee.role,
    )
