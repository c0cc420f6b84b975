"""
Pytest configuration and fixtures
"""
import os

# Settings are read at import time; tests never touch a real database
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key-for-leave-ledger-tests")
os.environ.setdefault("APP_ENV", "local")

from datetime import date
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.db.base import Base
from app.core.deps import get_db
from app.core.security import hash_password
from app.models import Employee, Role, LeaveType, Leave, LeaveKind, LeaveStatus  # noqa: F401
from app.utils.datetime_utils import now_utc, today_utc


# Use in-memory SQLite for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Enable foreign keys for SQLite
@event.listens_for(Engine, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db():
    """Create a fresh database for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Test client fixture with database override"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


def _create_employee(db: Session, emp_code: str, name: str, role: Role, password: str, email: str = None) -> Employee:
    employee = Employee(
        emp_code=emp_code,
        name=name,
        email=email,
        role=role.value,
        password_hash=hash_password(password),
        join_date=date(2024, 1, 1),
        active=True
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture
def admin_employee(db: Session):
    """Create an admin"""
    return _create_employee(db, "ADM001", "Admin", Role.ADMIN, "adminpass123", "admin@example.com")


@pytest.fixture
def hr_employee(db: Session):
    """Create an HR employee"""
    return _create_employee(db, "HR001", "HR Admin", Role.HR, "hrpass123", "hr@example.com")


@pytest.fixture
def test_employee(db: Session):
    """Create a regular employee"""
    return _create_employee(db, "EMP001", "Test Employee", Role.EMPLOYEE, "testpass123", "emp@example.com")


@pytest.fixture
def other_employee(db: Session):
    """Create a second regular employee"""
    return _create_employee(db, "EMP002", "Other Employee", Role.EMPLOYEE, "otherpass123", "other@example.com")


@pytest.fixture
def annual_leave(db: Session):
    """Day-granular leave type"""
    leave_type = LeaveType(name="Annual Leave", is_short_day=False, is_active=True)
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


@pytest.fixture
def short_day_leave(db: Session):
    """Short-day (hours/minutes) leave type"""
    leave_type = LeaveType(name="ShortDay", is_short_day=True, is_active=True)
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)
    return leave_type


def get_auth_token(client: TestClient, emp_code: str, password: str) -> str:
    """Helper to get auth token"""
    response = client.post(
        "/api/v1/auth/login",
        json={"emp_code": emp_code, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["access_token"]


def auth_headers(client: TestClient, emp_code: str, password: str) -> dict:
    return {"Authorization": f"Bearer {get_auth_token(client, emp_code, password)}"}


def add_allotment(db: Session, employee: Employee, leave_type: LeaveType, days=None, hours=None, minutes=None) -> Leave:
    """Insert an allotment row directly"""
    today = today_utc()
    allotment = Leave(
        kind=LeaveKind.ALLOTMENT,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        days=Decimal(str(days)) if days is not None else Decimal("0"),
        hours=hours,
        minutes=minutes,
        remaining_days=Decimal(str(days)) if days is not None else None,
        remaining_hours=hours,
        remaining_minutes=minutes,
        start_date=today,
        end_date=today,
        reason="Allotted by admin/HR",
        status=LeaveStatus.APPROVED,
        allotted_at=now_utc(),
    )
    db.add(allotment)
    db.commit()
    db.refresh(allotment)
    return allotment


def add_request(
    db: Session,
    employee: Employee,
    leave_type: LeaveType,
    days=None,
    hours=None,
    minutes=None,
    status: LeaveStatus = LeaveStatus.APPROVED,
    start: date = date(2026, 3, 2),
    end: date = None,
) -> Leave:
    """Insert a leave request row directly"""
    request = Leave(
        kind=LeaveKind.REQUEST,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        days=Decimal(str(days)) if days is not None else Decimal("0"),
        hours=hours,
        minutes=minutes,
        start_date=start,
        end_date=end or start,
        reason="Family event",
        status=status,
    )
    db.add(request)
    db.commit()
    db.refresh(request)
    return request
