"""
Tests for authentication endpoints
"""
from datetime import date

import pytest
from fastapi import Depends, status
from sqlalchemy.orm import Session

from app.core.deps import require_roles
from app.core.security import decode_token, hash_password
from app.main import app
from app.models.audit_log import AuditLog
from app.models.employee import Employee, Role


@pytest.fixture
def inactive_employee(db: Session):
    """Create an inactive test employee"""
    employee = Employee(
        emp_code="INACTIVE001",
        name="Inactive Employee",
        role=Role.EMPLOYEE.value,
        password_hash=hash_password("testpass123"),
        join_date=date(2024, 1, 1),
        active=False
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@app.get("/test/hr-only", include_in_schema=False)
async def hr_only_endpoint(user: Employee = Depends(require_roles(Role.HR))):
    return {"message": "HR only"}


def _login(client, emp_code, password):
    return client.post("/api/v1/auth/login", json={"emp_code": emp_code, "password": password})


def test_auth_login_success(client, db: Session, test_employee):
    """Test successful login returns 200 and access_token"""
    response = _login(client, "EMP001", "testpass123")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["token_type"] == "bearer"
    assert len(data["access_token"]) > 0
    assert data["employee_id"] == test_employee.id
    assert data["emp_code"] == "EMP001"
    assert data["role"] == "EMPLOYEE"
    assert db.query(AuditLog).filter(AuditLog.action == "AUTH_LOGIN_SUCCESS").count() == 1


def test_auth_login_wrong_password(client, test_employee):
    """Test login with wrong password returns 401"""
    response = _login(client, "EMP001", "wrongpassword")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["kind"] == "Unauthenticated"


def test_auth_login_invalid_emp_code(client, db: Session):
    """Test login with invalid emp_code returns 401"""
    response = _login(client, "INVALID001", "testpass123")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_auth_inactive_user_blocked(client, inactive_employee):
    """Test inactive user cannot login - returns 403"""
    response = _login(client, "INACTIVE001", "testpass123")

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert "inactive" in response.json()["detail"].lower()


def test_token_carries_employee_and_role(client, hr_employee):
    token = _login(client, "HR001", "hrpass123").json()["access_token"]

    payload = decode_token(token)

    assert payload["role"] == "HR"
    assert payload["emp_code"] == "HR001"
    # sub is a string in JWT
    assert int(payload["sub"]) == hr_employee.id


def test_role_guard_blocks_unauthorized_access(client, test_employee):
    token = _login(client, "EMP001", "testpass123").json()["access_token"]

    response = client.get("/test/hr-only", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_403_FORBIDDEN
    assert response.json()["kind"] == "Forbidden"


def test_role_guard_allows_authorized_access(client, hr_employee):
    token = _login(client, "HR001", "hrpass123").json()["access_token"]

    response = client.get("/test/hr-only", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["message"] == "HR only"


def test_invalid_token_is_unauthenticated(client, db: Session):
    response = client.get("/api/v1/leaves", headers={"Authorization": "Bearer not-a-token"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["kind"] == "Unauthenticated"
