"""
Leave endpoints
"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, BackgroundTasks, Depends, Query, Response, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_admin_or_hr
from app.core.errors import InvalidInputError
from app.models.employee import Employee, Role, LEAVE_MANAGER_ROLES
from app.schemas.leave import (
    AllotLeaveRequest,
    AllotmentUpdateRequest,
    LeaveCreateRequest,
    LeaveListResponse,
    LeaveOut,
    LeaveStatusUpdateRequest,
    OnLeaveResponse,
    PenaltyCreateRequest,
    RecalculateBalancesResponse,
)
from app.services import notification_service as notifications
from app.services.allotment_service import allot_leave, edit_allotment, recalculate_all_balances
from app.services.approval_service import delete_leave, transition_leave
from app.services.leave_balance import format_quantity, quantity_of
from app.services.leave_request_service import (
    create_leave_request,
    employees_on_leave,
    list_history,
    list_leaves,
    record_penalty,
)
from app.utils.datetime_utils import today_utc

router = APIRouter()


def _leave_manager_emails(db: Session):
    rows = db.query(Employee.email).filter(
        Employee.role.in_([r.value for r in LEAVE_MANAGER_ROLES]),
        Employee.active.is_(True),
        Employee.email.isnot(None),
    ).all()
    return [row[0] for row in rows]


@router.get("", response_model=LeaveListResponse)
async def list_leaves_endpoint(
    include_all: bool = Query(False, alias="all", description="HR: include every employee's records"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    List leave requests and allotments

    - EMPLOYEE: own records only
    - HR: own records, or everyone's with ``all=true``
    - ADMIN: everyone's records

    Deduction and penalty history is excluded (see ``/history``). The
    remaining balance of every allotment is recomputed before returning.
    """
    leaves = list_leaves(db, current_user, include_all=include_all)
    return LeaveListResponse(items=[LeaveOut.model_validate(leave) for leave in leaves], total=len(leaves))


@router.post("", response_model=LeaveOut, status_code=status.HTTP_201_CREATED)
async def create_leave_endpoint(
    leave_data: LeaveCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Apply for leave (creates PENDING request)

    Validations (EMPLOYEE role):
    - Leave type must be allotted to the employee
    - Requested quantity must not exceed the remaining balance

    Half-day requests count 0.5 days. Short-day requests take a from/to time
    (HH:MM); on short-day leave types they are stored as hours/minutes.
    Admin/HR are notified by email when an employee applies.
    """
    leave = create_leave_request(db, leave_data, current_user)

    if current_user.role == Role.EMPLOYEE:
        is_short_day = leave.leave_type.is_short_day
        subject, body = notifications.new_request_email(
            employee_name=current_user.name,
            leave_type_name=leave.leave_type.name,
            start_date=leave.start_date,
            end_date=leave.end_date,
            quantity=format_quantity(quantity_of(leave, is_short_day), is_short_day),
            reason=leave.reason,
        )
        background_tasks.add_task(notifications.send_email, _leave_manager_emails(db), subject, body)
    return leave


@router.post("/allot", response_model=LeaveOut, status_code=status.HTTP_201_CREATED)
async def allot_leave_endpoint(
    allot_data: AllotLeaveRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """
    Allot leave to an employee (HR/ADMIN only)

    One allotment per (employee, leave type). Day types take ``days``,
    short-day types take ``hours``/``minutes``.
    """
    return allot_leave(db, allot_data, current_user)


@router.post("/recalculate-balances", response_model=RecalculateBalancesResponse)
async def recalculate_balances_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """Recompute every allotment's remaining balance from approved requests (HR/ADMIN only)"""
    updated = recalculate_all_balances(db, current_user)
    return RecalculateBalancesResponse(
        message=f"Recalculated balances for {updated} allotted leaves",
        updated=updated,
    )


@router.get("/history", response_model=LeaveListResponse)
async def leave_history_endpoint(
    employee_id: Optional[int] = Query(None, description="Defaults to the current user"),
    leave_type_id: Optional[int] = Query(None, description="Filter by leave type"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Deduction and penalty history of an employee (own history, or any for HR/ADMIN)"""
    entries = list_history(db, current_user, employee_id=employee_id, leave_type_id=leave_type_id)
    return LeaveListResponse(items=[LeaveOut.model_validate(entry) for entry in entries], total=len(entries))


@router.post("/penalties", response_model=LeaveOut, status_code=status.HTTP_201_CREATED)
async def record_penalty_endpoint(
    penalty_data: PenaltyCreateRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """Record a penalty leave entry (HR/ADMIN only). Penalties never affect allotment balances."""
    return record_penalty(db, penalty_data, current_user)


@router.get("/on-leave-today", response_model=OnLeaveResponse)
async def on_leave_today_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Employees with an approved leave request covering today"""
    today = today_utc()
    employee_ids = employees_on_leave(db, today)
    return OnLeaveResponse(on_date=today, employee_ids=employee_ids, count=len(employee_ids))


@router.get("/on-leave-by-date", response_model=OnLeaveResponse)
async def on_leave_by_date_endpoint(
    on_date: Optional[date] = Query(None, alias="date", description="Day to check (YYYY-MM-DD)"),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """Employees with an approved leave request covering ``date`` (HR/ADMIN only)"""
    if on_date is None:
        raise InvalidInputError("Date parameter is required")
    employee_ids = employees_on_leave(db, on_date)
    return OnLeaveResponse(on_date=on_date, employee_ids=employee_ids, count=len(employee_ids))


@router.put("/{leave_id}", response_model=LeaveOut)
async def update_leave_status_endpoint(
    leave_id: int,
    update_data: LeaveStatusUpdateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """
    Approve or reject a leave request (HR/ADMIN only)

    - Approving deducts the request from its allotment and records a
      deduction history entry
    - Rejecting a previously approved request restores the balance
    - HR cannot act on their own requests

    The requester is notified by email; delivery failures never fail the call.
    """
    leave = transition_leave(
        db,
        leave_id,
        update_data.status,
        current_user,
        rejection_reason=update_data.rejection_reason,
    )

    requester: Employee = leave.employee
    if requester.email:
        subject, body = notifications.status_change_email(
            employee_name=requester.name,
            leave_type_name=leave.leave_type.name,
            start_date=leave.start_date,
            end_date=leave.end_date,
            status=leave.status.value,
            rejection_reason=leave.rejection_reason,
        )
        background_tasks.add_task(notifications.send_email, [requester.email], subject, body)
    return leave


@router.patch("/{leave_id}", response_model=LeaveOut)
async def edit_allotment_endpoint(
    leave_id: int,
    update_data: AllotmentUpdateRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """Edit an allotment (HR/ADMIN only); its remaining balance is recomputed"""
    return edit_allotment(db, leave_id, update_data, current_user)


@router.delete("/{leave_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_leave_endpoint(
    leave_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Delete a leave record

    - EMPLOYEE: own requests, while still pending
    - HR/ADMIN: any record; deleting an approved request restores the balance
    """
    delete_leave(db, leave_id, current_user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
