"""
Allotment service - granting, editing and reconciling leave allotments
"""
import logging
from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from app.constants import DEFAULT_ALLOT_REASON
from app.core.errors import DuplicateAllotmentError, InvalidInputError, NotFoundError
from app.models.employee import Employee
from app.models.leave import Leave, LeaveKind, LeaveStatus
from app.models.leave_type import LeaveType
from app.schemas.leave import AllotLeaveRequest, AllotmentUpdateRequest
from app.services import leave_ledger as ledger
from app.services.audit_service import log_audit
from app.services.leave_balance import LeaveQuantity, format_quantity, from_minutes, to_days
from app.services.leave_type_service import get_leave_type_or_404
from app.utils.datetime_utils import now_utc, today_utc

logger = logging.getLogger(__name__)


def _allotted_days(days: Optional[Decimal]) -> Decimal:
    if days is None:
        raise InvalidInputError("Employee, leave type, and days are required")
    value = to_days(days)
    if value <= 0:
        raise InvalidInputError("Invalid days value")
    return value


def _allotted_time(hours: Optional[int], minutes: Optional[int]) -> LeaveQuantity:
    """Hours/minutes normalised so minutes < 60; zero is rejected"""
    total = (hours or 0) * 60 + (minutes or 0)
    if total <= 0:
        raise InvalidInputError("Employee, leave type, and hours/minutes are required for shortday leave")
    return from_minutes(total)


def _allotment_end(start: date, days: Decimal) -> date:
    """Last calendar day covered by ``days`` of leave starting on ``start``"""
    return start + timedelta(days=int(days.to_integral_value(rounding=ROUND_CEILING)) - 1)


def _ensure_unique(db: Session, employee_id: int, leave_type: LeaveType, exclude_id: Optional[int] = None) -> None:
    if ledger.get_allotment(db, employee_id, leave_type.id, exclude_id=exclude_id):
        raise DuplicateAllotmentError(f"Already allotted {leave_type.name}")


def allot_leave(db: Session, data: AllotLeaveRequest, actor: Employee) -> Leave:
    """
    Allot leave to an employee

    Creates the single ALLOTMENT record of the (employee, leave type) pair.
    Day types need ``days`` > 0 and cover ``ceil(days)`` calendar days from
    today; short-day types need a non-zero ``hours``/``minutes`` total.

    Raises:
        NotFoundError: If the employee or leave type does not exist
        InvalidInputError: If the quantity is missing or not positive
        DuplicateAllotmentError: If the pair is already allotted
    """
    employee = db.query(Employee).filter(Employee.id == data.employee_id).first()
    if not employee:
        raise NotFoundError("Employee not found")
    leave_type = get_leave_type_or_404(db, data.leave_type_id)

    start = today_utc()
    if leave_type.is_short_day:
        quantity = _allotted_time(data.hours, data.minutes)
        end = start
    else:
        quantity = LeaveQuantity(days=_allotted_days(data.days))
        end = _allotment_end(start, quantity.days)

    _ensure_unique(db, employee.id, leave_type)

    now = now_utc()
    allotment = Leave(
        kind=LeaveKind.ALLOTMENT,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        days=quantity.days,
        start_date=start,
        end_date=end,
        reason=data.reason or DEFAULT_ALLOT_REASON,
        status=LeaveStatus.APPROVED,
        carry_forward=data.carry_forward,
        allotted_by_id=actor.id,
        allotted_at=now,
        approved_by_id=actor.id,
        approved_at=now,
    )
    if leave_type.is_short_day:
        allotment.hours = quantity.hours
        allotment.minutes = quantity.minutes
        allotment.remaining_hours = quantity.hours
        allotment.remaining_minutes = quantity.minutes
    else:
        allotment.remaining_days = quantity.days

    db.add(allotment)
    db.flush()
    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_ALLOT",
        entity_type="leaves",
        entity_id=allotment.id,
        meta={
            "employee_id": employee.id,
            "leave_type": leave_type.name,
            "quantity": format_quantity(quantity, leave_type.is_short_day),
            "carry_forward": data.carry_forward,
        },
        commit=False,
    )
    db.commit()
    db.refresh(allotment)

    logger.info(
        "leave allotted: allotment_id=%s employee_id=%s leave_type=%s quantity=%s by=%s",
        allotment.id, employee.id, leave_type.name,
        format_quantity(quantity, leave_type.is_short_day), actor.id,
    )
    return allotment


def edit_allotment(db: Session, leave_id: int, data: AllotmentUpdateRequest, actor: Employee) -> Leave:
    """
    Edit an allotment; the cached balance is recomputed from the ledger afterwards

    Raises:
        NotFoundError: If the allotment or new leave type does not exist
        InvalidInputError: If the record is not an allotment or a value is invalid
        DuplicateAllotmentError: If moving it would create a second allotment for a pair
    """
    allotment = ledger.get_leave_or_404(db, leave_id)
    if not allotment.is_allotment:
        raise InvalidInputError("Cannot edit non-allotted leave")

    changes = data.model_dump(exclude_unset=True)
    start_date = data.start_date or allotment.start_date
    end_date = data.end_date or allotment.end_date
    if end_date < start_date:
        raise InvalidInputError("End date must be on or after the start date")

    leave_type = allotment.leave_type
    if data.leave_type_id is not None and data.leave_type_id != allotment.leave_type_id:
        leave_type = get_leave_type_or_404(db, data.leave_type_id)
        _ensure_unique(db, allotment.employee_id, leave_type, exclude_id=allotment.id)

    unit_changed = leave_type.is_short_day != allotment.leave_type.is_short_day
    quantity = None
    if leave_type.is_short_day:
        if data.hours is not None or data.minutes is not None:
            quantity = _allotted_time(
                data.hours if data.hours is not None else (0 if unit_changed else allotment.hours),
                data.minutes if data.minutes is not None else (0 if unit_changed else allotment.minutes),
            )
    elif data.days is not None:
        quantity = LeaveQuantity(days=_allotted_days(data.days))
    if unit_changed and quantity is None:
        unit = "hours/minutes" if leave_type.is_short_day else "days"
        raise InvalidInputError(f"Provide the allotted {unit} for {leave_type.name}")

    if leave_type is not allotment.leave_type:
        allotment.leave_type_id = leave_type.id
        allotment.leave_type = leave_type
    if quantity is not None:
        allotment.days = quantity.days
        allotment.hours = quantity.hours if leave_type.is_short_day else None
        allotment.minutes = quantity.minutes if leave_type.is_short_day else None

    allotment.start_date = start_date
    allotment.end_date = end_date
    if "reason" in changes:
        allotment.reason = data.reason
    if data.carry_forward is not None:
        allotment.carry_forward = data.carry_forward

    remaining = ledger.refresh_allotment(db, allotment)
    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_ALLOT_EDIT",
        entity_type="leaves",
        entity_id=allotment.id,
        meta={"changes": changes, "remaining": format_quantity(remaining, leave_type.is_short_day)},
        commit=False,
    )
    ledger.commit_or_conflict(db, "allotment")
    db.refresh(allotment)
    return allotment


def recalculate_all_balances(db: Session, actor: Employee) -> int:
    """
    Overwrite every allotment's cached balance from the ledger

    Full, non-incremental reconciliation used to repair drift.

    Returns:
        Number of allotments recalculated
    """
    allotments = db.query(Leave).options(joinedload(Leave.leave_type)).filter(
        Leave.kind == LeaveKind.ALLOTMENT
    ).all()
    usage = ledger.approved_usage_by_pair(db, allotments)
    for allotment in allotments:
        ledger.refresh_allotment(db, allotment, usage.get((allotment.employee_id, allotment.leave_type_id), []))

    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_RECALCULATE",
        entity_type="leaves",
        meta={"updated": len(allotments)},
        commit=False,
    )
    ledger.commit_or_conflict(db, "leave balances")
    logger.info("recalculated balances for %s allotment(s)", len(allotments))
    return len(allotments)