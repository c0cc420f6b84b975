"""
Tests for leave listing, history and "on leave" queries
"""
from datetime import date, timedelta
from decimal import Decimal

from fastapi import status
from sqlalchemy.orm import Session

from app.models.leave import Leave, LeaveKind, LeaveStatus
from app.utils.datetime_utils import now_utc, today_utc
from conftest import add_allotment, add_request, auth_headers


def _history_entry(db: Session, employee, leave_type, kind, days, reason):
    entry = Leave(
        kind=kind,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        days=Decimal(str(days)),
        start_date=date(2026, 3, 2),
        end_date=date(2026, 3, 2),
        reason=reason,
        status=LeaveStatus.APPROVED,
        allotted_at=now_utc(),
    )
    db.add(entry)
    db.commit()
    return entry


def test_employee_sees_only_own_records(client, db: Session, test_employee, other_employee, annual_leave):
    add_allotment(db, test_employee, annual_leave, days=5)
    mine = add_request(db, test_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    add_request(db, other_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    headers = auth_headers(client, "EMP001", "testpass123")

    response = client.get("/api/v1/leaves", params={"all": "true"}, headers=headers)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["total"] == 2
    assert {item["employee_id"] for item in data["items"]} == {test_employee.id}
    assert mine.id in {item["id"] for item in data["items"]}


def test_admin_lists_everyone_without_all_flag(client, db: Session, admin_employee, test_employee, other_employee, annual_leave):
    add_request(db, test_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    add_request(db, other_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.get("/api/v1/leaves", headers=headers)

    assert response.json()["total"] == 2
    assert {item["employee"]["emp_code"] for item in response.json()["items"]} == {"EMP001", "EMP002"}
    assert response.json()["items"][0]["leave_type"]["name"] == "Annual Leave"


def test_hr_all_flag_lists_everyone(client, db: Session, hr_employee, test_employee, other_employee, annual_leave):
    add_request(db, test_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    add_request(db, other_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    own_request = add_request(db, hr_employee, annual_leave, days=1, status=LeaveStatus.PENDING)
    headers = auth_headers(client, "HR001", "hrpass123")

    own = client.get("/api/v1/leaves", headers=headers)
    everyone = client.get("/api/v1/leaves", params={"all": "true"}, headers=headers)

    assert [item["id"] for item in own.json()["items"]] == [own_request.id]
    assert everyone.json()["total"] == 3


def test_listing_excludes_history_entries(client, db: Session, test_employee, annual_leave):
    add_allotment(db, test_employee, annual_leave, days=5)
    _history_entry(db, test_employee, annual_leave, LeaveKind.DEDUCTION, 1,
                   "Leave deduction: 1 day(s) deducted from allotted Annual Leave balance")
    _history_entry(db, test_employee, annual_leave, LeaveKind.PENALTY, 1, "Exceeded max late clock-ins")
    headers = auth_headers(client, "EMP001", "testpass123")

    response = client.get("/api/v1/leaves", headers=headers)

    kinds = [item["kind"] for item in response.json()["items"]]
    assert kinds == ["allotment"]


def test_listing_refreshes_stale_allotment_cache(client, db: Session, test_employee, annual_leave):
    allotment = add_allotment(db, test_employee, annual_leave, days=5)
    add_request(db, test_employee, annual_leave, days=2, status=LeaveStatus.APPROVED)
    headers = auth_headers(client, "EMP001", "testpass123")

    response = client.get("/api/v1/leaves", headers=headers)

    listed = next(item for item in response.json()["items"] if item["kind"] == "allotment")
    assert listed["remaining_days"] == 3
    db.refresh(allotment)
    assert allotment.remaining_days == Decimal("3")


def test_listing_fresh_cache_does_not_bump_version(client, db: Session, test_employee, annual_leave):
    allotment = add_allotment(db, test_employee, annual_leave, days=5)
    version = allotment.version
    headers = auth_headers(client, "EMP001", "testpass123")

    client.get("/api/v1/leaves", headers=headers)

    db.refresh(allotment)
    assert allotment.version == version


def test_penalty_does_not_reduce_balance(client, db: Session, admin_employee, test_employee, annual_leave):
    allotment = add_allotment(db, test_employee, annual_leave, days=5)
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.post(
        "/api/v1/leaves/penalties",
        json={
            "employee_id": test_employee.id,
            "leave_type_id": annual_leave.id,
            "penalty_date": "2026-03-02",
            "days": 1,
            "reason": "Exceeded max late clock-ins",
        },
        headers=headers,
    )

    assert response.status_code == status.HTTP_201_CREATED
    assert response.json()["kind"] == "penalty"
    client.post("/api/v1/leaves/recalculate-balances", headers=headers)
    db.refresh(allotment)
    assert allotment.remaining_days == Decimal("5")


def test_history_lists_deductions_and_penalties(client, db: Session, test_employee, other_employee, annual_leave):
    _history_entry(db, test_employee, annual_leave, LeaveKind.DEDUCTION, 2,
                   "Leave deduction: 2 day(s) deducted from allotted Annual Leave balance")
    _history_entry(db, test_employee, annual_leave, LeaveKind.PENALTY, 1, "Exceeded max late clock-ins")
    add_request(db, test_employee, annual_leave, days=1)
    headers = auth_headers(client, "EMP001", "testpass123")

    own = client.get("/api/v1/leaves/history", headers=headers)
    others = client.get("/api/v1/leaves/history", params={"employee_id": other_employee.id}, headers=headers)

    assert own.status_code == status.HTTP_200_OK
    assert sorted(item["kind"] for item in own.json()["items"]) == ["deduction", "penalty"]
    assert others.status_code == status.HTTP_403_FORBIDDEN


def test_on_leave_by_date(client, db: Session, admin_employee, test_employee, other_employee, annual_leave):
    add_request(db, test_employee, annual_leave, days=3, start=date(2026, 3, 2), end=date(2026, 3, 4))
    add_request(db, other_employee, annual_leave, days=1, status=LeaveStatus.PENDING, start=date(2026, 3, 3))
    _history_entry(db, other_employee, annual_leave, LeaveKind.PENALTY, 1, "Exceeded max late clock-ins")
    headers = auth_headers(client, "ADM001", "adminpass123")

    covered = client.get("/api/v1/leaves/on-leave-by-date", params={"date": "2026-03-03"}, headers=headers)
    uncovered = client.get("/api/v1/leaves/on-leave-by-date", params={"date": "2026-03-05"}, headers=headers)
    penalty_day = client.get("/api/v1/leaves/on-leave-by-date", params={"date": "2026-03-02"}, headers=headers)

    assert covered.json() == {"on_date": "2026-03-03", "employee_ids": [test_employee.id], "count": 1}
    assert uncovered.json()["count"] == 0
    assert penalty_day.json()["employee_ids"] == [test_employee.id]


def test_on_leave_by_date_requires_date(client, db: Session, admin_employee):
    headers = auth_headers(client, "ADM001", "adminpass123")

    response = client.get("/api/v1/leaves/on-leave-by-date", headers=headers)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Date parameter is required"


def test_on_leave_today(client, db: Session, test_employee, annual_leave):
    today = today_utc()
    add_request(db, test_employee, annual_leave, days=2, start=today - timedelta(days=1), end=today)
    headers = auth_headers(client, "EMP001", "testpass123")

    response = client.get("/api/v1/leaves/on-leave-today", headers=headers)

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["employee_ids"] == [test_employee.id]
