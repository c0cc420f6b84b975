"""
Approval service - leave request status transitions and deletion

Transitions (admin/HR only):

    pending  -> approved | rejected
    approved -> rejected            (reversal, balance restored)
    rejected -> approved            (reversal, balance deducted again)

Nothing ever returns to pending. Entering ``approved`` deducts the request
from its allotment and writes a DEDUCTION history entry; leaving
``approved`` recomputes the allotment from the remaining approved requests.
The transition, the allotment update and the history entry are committed
together.
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.constants import DEDUCTION_REASON_PREFIX
from app.core.errors import (
    ForbiddenError,
    InvalidInputError,
    SelfApprovalForbiddenError,
)
from app.models.employee import Employee, Role
from app.models.leave import Leave, LeaveKind, LeaveStatus
from app.models.leave_type import LeaveType
from app.services import leave_ledger as ledger
from app.services.audit_service import log_audit
from app.services.leave_balance import (
    LeaveQuantity,
    format_days,
    format_hours_minutes,
    format_quantity,
    quantity_of,
    subtract,
)
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

TARGET_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.REJECTED)


def deduction_reason(quantity: LeaveQuantity, leave_type: LeaveType) -> str:
    if leave_type.is_short_day:
        amount = format_hours_minutes(quantity)
    else:
        amount = f"{format_days(quantity.days)} day(s)"
    return f"{DEDUCTION_REASON_PREFIX}{amount} deducted from allotted {leave_type.name} balance"


def _deduction_entry(leave: Leave, requested: LeaveQuantity, actor: Employee) -> Leave:
    now = now_utc()
    is_short_day = leave.leave_type.is_short_day
    return Leave(
        kind=LeaveKind.DEDUCTION,
        employee_id=leave.employee_id,
        leave_type_id=leave.leave_type_id,
        days=requested.days,
        hours=requested.hours if is_short_day else None,
        minutes=requested.minutes if is_short_day else None,
        start_date=leave.start_date,
        end_date=leave.end_date,
        reason=deduction_reason(requested, leave.leave_type),
        status=LeaveStatus.APPROVED,
        allotted_by_id=actor.id,
        allotted_at=now,
        approved_by_id=actor.id,
        approved_at=now,
        source_leave_id=leave.id,
    )


def transition_leave(
    db: Session,
    leave_id: int,
    new_status: LeaveStatus,
    actor: Employee,
    rejection_reason: Optional[str] = None,
) -> Leave:
    """
    Approve or reject a leave request

    Re-applying the current status only restamps the approver; the balance
    is untouched, so re-approval never deducts twice.

    Raises:
        NotFoundError: If the leave does not exist
        InvalidInputError: If the record is not a request or the status is not approved/rejected
        SelfApprovalForbiddenError: If HR acts on their own request
        ConflictError: If the allotment or request changed concurrently
    """
    if new_status not in TARGET_STATUSES:
        raise InvalidInputError("Invalid status")

    leave = ledger.get_leave_or_404(db, leave_id)
    if leave.kind != LeaveKind.REQUEST:
        raise InvalidInputError("Only leave requests can be approved or rejected")
    if actor.role == Role.HR and leave.employee_id == actor.id:
        raise SelfApprovalForbiddenError(
            "HR cannot approve their own leave requests. Please contact admin for approval."
        )

    previous_status = leave.status
    leave_type = leave.leave_type
    is_short_day = leave_type.is_short_day
    requested = quantity_of(leave, is_short_day)
    allotment = ledger.get_allotment(db, leave.employee_id, leave.leave_type_id)
    balance_after = None

    if allotment is not None:
        if new_status == LeaveStatus.APPROVED and previous_status != LeaveStatus.APPROVED:
            records = ledger.approved_usage(db, leave.employee_id, leave.leave_type_id)
            remaining = ledger.current_remaining(allotment, records, exclude_id=leave.id)
            # No clamp: an over-approval shows up as a negative cache
            balance_after = subtract(remaining, requested, is_short_day)
            ledger.store_remaining(allotment, balance_after, is_short_day)
            db.add(_deduction_entry(leave, requested, actor))
        elif new_status == LeaveStatus.REJECTED and previous_status == LeaveStatus.APPROVED:
            balance_after = ledger.refresh_allotment(db, allotment, exclude_id=leave.id)

    leave.status = new_status
    leave.approved_by_id = actor.id
    leave.approved_at = now_utc()
    leave.rejection_reason = rejection_reason if new_status == LeaveStatus.REJECTED else None

    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_APPROVE" if new_status == LeaveStatus.APPROVED else "LEAVE_REJECT",
        entity_type="leaves",
        entity_id=leave.id,
        meta={
            "previous_status": previous_status,
            "status": new_status,
            "quantity": format_quantity(requested, is_short_day),
            "remaining": format_quantity(balance_after, is_short_day) if balance_after is not None else None,
            "rejection_reason": leave.rejection_reason,
        },
        commit=False,
    )
    ledger.commit_or_conflict(db, "leave request")
    db.refresh(leave)

    logger.info(
        "leave status transition: leave_id=%s employee_id=%s %s -> %s by=%s remaining=%s",
        leave.id, leave.employee_id, previous_status.value, new_status.value, actor.id,
        format_quantity(balance_after, is_short_day) if balance_after is not None else "unchanged",
    )
    return leave


def delete_leave(db: Session, leave_id: int, actor: Employee) -> None:
    """
    Delete a leave record

    Employees may delete their own requests while pending; admin/HR may delete
    any record. Removing an approved request restores its allotment balance.
    Deduction entries written for the request stay as history with their
    link cleared.

    Raises:
        NotFoundError: If the leave does not exist
        ForbiddenError: If an employee targets someone else's record or an allotment
        InvalidInputError: If an employee targets a non-pending request
    """
    leave = ledger.get_leave_or_404(db, leave_id)

    if not actor.is_leave_manager:
        if leave.employee_id != actor.id or leave.kind != LeaveKind.REQUEST:
            raise ForbiddenError("You can only delete your own leave requests")
        if leave.status != LeaveStatus.PENDING:
            raise InvalidInputError("You can only delete pending leave requests")

    restore_balance = leave.kind == LeaveKind.REQUEST and leave.status == LeaveStatus.APPROVED
    snapshot = {
        "kind": leave.kind,
        "status": leave.status,
        "employee_id": leave.employee_id,
        "leave_type_id": leave.leave_type_id,
    }

    for entry in list(leave.deductions):
        entry.source_leave_id = None

    remaining = None
    if restore_balance:
        allotment = ledger.get_allotment(db, leave.employee_id, leave.leave_type_id)
        if allotment is not None:
            remaining = ledger.refresh_allotment(db, allotment, exclude_id=leave.id)
            snapshot["remaining"] = format_quantity(remaining, allotment.leave_type.is_short_day)

    db.delete(leave)
    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_DELETE",
        entity_type="leaves",
        entity_id=leave_id,
        meta=snapshot,
        commit=False,
    )
    ledger.commit_or_conflict(db, "leave")
    logger.info(
        "leave deleted: leave_id=%s by=%s balance_restored=%s",
        leave_id, actor.id, remaining is not None,
    )
