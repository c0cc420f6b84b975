"""
Tests for leave allotment, allotment edits and balance recalculation
"""
from datetime import date
from decimal import Decimal

from fastapi import status
from sqlalchemy.orm import Session

from app.models.leave import Leave, LeaveKind, LeaveStatus
from app.utils.datetime_utils import today_utc
from conftest import add_allotment, add_request, auth_headers

ALLOT_URL = "/api/v1/leaves/allot"


def test_allot_days(client, db: Session, hr_employee, test_employee, annual_leave):
    headers = auth_headers(client, "HR001", "hrpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": annual_leave.id, "days": 2.5},
        headers=headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["kind"] == "allotment"
    assert data["status"] == "approved"
    assert data["days"] == 2.5
    assert data["remaining_days"] == 2.5
    assert data["allotted_by_id"] == hr_employee.id
    assert data["reason"] == "Allotted by admin/HR"
    assert data["start_date"] == today_utc().isoformat()
    # ceil(2.5) calendar days, inclusive
    assert (date.fromisoformat(data["end_date"]) - today_utc()).days == 2


def test_allot_short_day_normalises_minutes(client, db: Session, admin_employee, test_employee, short_day_leave):
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": short_day_leave.id, "hours": 1, "minutes": 90},
        headers=headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert (data["hours"], data["minutes"]) == (2, 30)
    assert (data["remaining_hours"], data["remaining_minutes"]) == (2, 30)
    assert data["days"] == 0


def test_allot_short_day_requires_time(client, db: Session, admin_employee, test_employee, short_day_leave):
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": short_day_leave.id, "hours": 0, "minutes": 0},
        headers=headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Employee, leave type, and hours/minutes are required for shortday leave"


def test_allot_invalid_days(client, db: Session, admin_employee, test_employee, annual_leave):
    headers = auth_headers(client, "ADM001", "adminpass123")

    missing = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": annual_leave.id},
        headers=headers,
    )
    negative = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": annual_leave.id, "days": -1},
        headers=headers,
    )

    assert missing.status_code == status.HTTP_400_BAD_REQUEST
    assert missing.json()["detail"] == "Employee, leave type, and days are required"
    assert negative.status_code == status.HTTP_400_BAD_REQUEST
    assert negative.json()["detail"] == "Invalid days value"


def test_allot_twice_is_rejected(client, db: Session, admin_employee, test_employee, annual_leave):
    add_allotment(db, test_employee, annual_leave, days=5)
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": annual_leave.id, "days": 3},
        headers=headers,
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["kind"] == "DuplicateAllotment"
    assert response.json()["detail"] == "Already allotted Annual Leave"
    assert db.query(Leave).filter(Leave.kind == LeaveKind.ALLOTMENT).count() == 1


def test_allot_unknown_employee(client, db: Session, admin_employee, annual_leave):
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": 999, "leave_type_id": annual_leave.id, "days": 3},
        headers=headers,
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND


def test_employee_cannot_allot(client, db: Session, test_employee, annual_leave):
    headers = auth_headers(client, "EMP001", "testpass123")

    response = client.post(
        ALLOT_URL,
        json={"employee_id": test_employee.id, "leave_type_id": annual_leave.id, "days": 3},
        headers=headers,
    )

    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_edit_allotment_recomputes_remaining(client, db: Session, admin_employee, test_employee, annual_leave):
    allotment = add_allotment(db, test_employee, annual_leave, days=10)
    add_request(db, test_employee, annual_leave, days=4, status=LeaveStatus.APPROVED)
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.patch(
        f"/api/v1/leaves/{allotment.id}",
        json={"days": 12, "carry_forward": True},
        headers=headers,
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["days"] == 12
    assert data["remaining_days"] == 8
    assert data["carry_forward"] is True


def test_edit_allotment_to_short_day_type_requires_time(client, db: Session, admin_employee, test_employee, annual_leave, short_day_leave):
    allotment = add_allotment(db, test_employee, annual_leave, days=10)
    headers = auth_headers(client, "ADM001", "adminpass123")

    without_time = client.patch(
        f"/api/v1/leaves/{allotment.id}",
        json={"leave_type_id": short_day_leave.id},
        headers=headers,
    )
    with_time = client.patch(
        f"/api/v1/leaves/{allotment.id}",
        json={"leave_type_id": short_day_leave.id, "hours": 3},
        headers=headers,
    )

    assert without_time.status_code == status.HTTP_400_BAD_REQUEST
    assert with_time.status_code == status.HTTP_200_OK
    data = with_time.json()
    assert data["leave_type_id"] == short_day_leave.id
    assert (data["remaining_hours"], data["remaining_minutes"]) == (3, 0)
    assert data["remaining_days"] is None


def test_edit_rejects_non_allotment(client, db: Session, admin_employee, test_employee, annual_leave):
    request = add_request(db, test_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.patch(f"/api/v1/leaves/{request.id}", json={"days": 2}, headers=headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Cannot edit non-allotted leave"


def test_recalculate_repairs_drifted_caches(client, db: Session, admin_employee, test_employee, other_employee, annual_leave, short_day_leave):
    days_allotment = add_allotment(db, test_employee, annual_leave, days=10)
    time_allotment = add_allotment(db, other_employee, short_day_leave, hours=2, minutes=0)
    add_request(db, test_employee, annual_leave, days=3, status=LeaveStatus.APPROVED)
    add_request(db, test_employee, annual_leave, days=5, status=LeaveStatus.REJECTED)
    add_request(db, other_employee, short_day_leave, hours=0, minutes=45, status=LeaveStatus.APPROVED)

    # Drift both caches
    days_allotment.remaining_days = Decimal("1")
    time_allotment.remaining_hours = 9
    db.commit()
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post("/api/v1/leaves/recalculate-balances", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["updated"] == 2
    db.refresh(days_allotment)
    db.refresh(time_allotment)
    assert days_allotment.remaining_days == Decimal("7")
    assert (time_allotment.remaining_hours, time_allotment.remaining_minutes) == (1, 15)


def test_recalculate_conserves_total(client, db: Session, admin_employee, test_employee, annual_leave):
    """remaining + approved usage == allotted whenever usage fits"""
    allotment = add_allotment(db, test_employee, annual_leave, days=8)
    used = [Decimal("1"), Decimal("0.5"), Decimal("2")]
    for days in used:
        add_request(db, test_employee, annual_leave, days=days, status=LeaveStatus.APPROVED)
    headers = auth_headers(client, "ADM001", "adminpass123")

    client.post("/api/v1/leaves/recalculate-balances", headers=headers)

    db.refresh(allotment)
    assert allotment.remaining_days + sum(used) == allotment.days
