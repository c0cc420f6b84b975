"""
Leave request service - applying for leave, listing and "who is on leave" queries
"""
import logging
import re
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session, joinedload

from app.constants import HALF_DAY_DAYS, LEGACY_SHORT_DAY_DEFAULT_DAYS
from app.core.errors import (
    ForbiddenError,
    InsufficientBalanceError,
    InvalidInputError,
    NoAllotmentError,
    NotFoundError,
)
from app.models.employee import Employee, Role
from app.models.leave import HISTORY_KINDS, Leave, LeaveKind, LeaveStatus
from app.models.leave_type import LeaveType
from app.schemas.leave import LeaveCreateRequest, PenaltyCreateRequest
from app.services import leave_ledger as ledger
from app.services.audit_service import log_audit
from app.services.leave_balance import (
    DAYS_QUANTUM,
    LeaveQuantity,
    exceeds,
    format_quantity,
    from_minutes,
    to_days,
)
from app.services.leave_type_service import get_leave_type_or_404
from app.utils.datetime_utils import now_utc

logger = logging.getLogger(__name__)

TIME_OF_DAY = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


def _parse_time_of_day(value: str) -> int:
    """'HH:MM' -> minutes since midnight"""
    match = TIME_OF_DAY.match(value.strip())
    if not match:
        raise InvalidInputError(f"Invalid time format '{value}', expected HH:MM")
    return int(match.group(1)) * 60 + int(match.group(2))


def parse_short_day_window(data: LeaveCreateRequest) -> Optional[Tuple[str, int]]:
    """
    Short-day window of a request as ("HH:MM-HH:MM", duration in minutes),
    or None when the request is not a short-day request.
    """
    if data.short_day_from_time and data.short_day_to_time:
        start, end = data.short_day_from_time.strip(), data.short_day_to_time.strip()
    elif data.short_day_time and data.short_day_time.strip():
        parts = data.short_day_time.split("-")
        if len(parts) != 2:
            raise InvalidInputError("Invalid short day time, expected HH:MM-HH:MM")
        start, end = parts[0].strip(), parts[1].strip()
    else:
        return None

    duration = _parse_time_of_day(end) - _parse_time_of_day(start)
    if duration < 0:
        raise InvalidInputError("Short day end time must be after the start time")
    return f"{start}-{end}", duration


def requested_quantity(
    data: LeaveCreateRequest,
    leave_type: LeaveType,
) -> Tuple[LeaveQuantity, Optional[str]]:
    """
    Quantity a new request asks for, plus the normalised short-day window.

    - half-day: 0.5 days
    - short-day window on a short-day type: hours/minutes, days = 0
    - short-day window on a day type: fraction of a 24h day (0.25 when empty)
    - otherwise: inclusive day count
    """
    window = parse_short_day_window(data)

    if data.half_day_type is not None:
        if leave_type.is_short_day:
            raise InvalidInputError("Half-day is not available for short day leave types")
        return LeaveQuantity(days=HALF_DAY_DAYS), None

    if leave_type.is_short_day:
        if window is None:
            raise InvalidInputError("Short day leave requires a from and to time")
        short_day_time, duration = window
        if duration == 0:
            raise InvalidInputError("Short day leave must be longer than 0 minutes")
        return from_minutes(duration), short_day_time

    if window is not None:
        short_day_time, duration = window
        if duration == 0:
            return LeaveQuantity(days=LEGACY_SHORT_DAY_DEFAULT_DAYS), short_day_time
        fraction = (Decimal(duration) / Decimal(60) / Decimal(24)).quantize(DAYS_QUANTUM, rounding=ROUND_HALF_UP)
        return LeaveQuantity(days=fraction), short_day_time

    return LeaveQuantity(days=Decimal((data.end_date - data.start_date).days + 1)), None


def validate_against_balance(
    db: Session,
    employee_id: int,
    leave_type: LeaveType,
    requested: LeaveQuantity,
) -> LeaveQuantity:
    """
    Check a new employee request against the remaining balance of its allotment

    Returns:
        The remaining balance the request was checked against

    Raises:
        NoAllotmentError: If the leave type was never allotted to the employee
        InsufficientBalanceError: If the request asks for more than remains
    """
    allotment = ledger.get_allotment(db, employee_id, leave_type.id)
    if not allotment:
        raise NoAllotmentError("This leave type has not been allotted to you")

    records = ledger.approved_usage(db, employee_id, leave_type.id)
    remaining = ledger.current_remaining(allotment, records)
    if exceeds(requested, remaining, leave_type.is_short_day):
        raise InsufficientBalanceError(
            "Insufficient leave balance. "
            f"You have {format_quantity(remaining, leave_type.is_short_day)} remaining, "
            f"but requested {format_quantity(requested, leave_type.is_short_day)}."
        )
    return remaining


def create_leave_request(db: Session, data: LeaveCreateRequest, current_user: Employee) -> Leave:
    """
    Apply for leave (creates a PENDING request for the current user)

    Balance checks apply to the EMPLOYEE role only; nothing is deducted until
    the request is approved.
    """
    if data.end_date < data.start_date:
        raise InvalidInputError("End date must be on or after the start date")

    leave_type = get_leave_type_or_404(db, data.leave_type_id)
    requested, short_day_time = requested_quantity(data, leave_type)

    if current_user.role == Role.EMPLOYEE:
        validate_against_balance(db, current_user.id, leave_type, requested)

    leave = Leave(
        kind=LeaveKind.REQUEST,
        employee_id=current_user.id,
        leave_type_id=leave_type.id,
        days=requested.days,
        hours=requested.hours if leave_type.is_short_day else None,
        minutes=requested.minutes if leave_type.is_short_day else None,
        start_date=data.start_date,
        end_date=data.end_date,
        reason=data.reason,
        status=LeaveStatus.PENDING,
        half_day_type=data.half_day_type,
        short_day_time=short_day_time,
    )
    db.add(leave)
    db.flush()

    log_audit(
        db=db,
        actor_id=current_user.id,
        action="LEAVE_APPLY",
        entity_type="leaves",
        entity_id=leave.id,
        meta={
            "leave_type": leave_type.name,
            "start_date": data.start_date,
            "end_date": data.end_date,
            "quantity": format_quantity(requested, leave_type.is_short_day),
        },
        commit=False,
    )
    db.commit()
    db.refresh(leave)

    logger.info(
        "leave request created: leave_id=%s employee_id=%s leave_type=%s quantity=%s",
        leave.id, current_user.id, leave_type.name, format_quantity(requested, leave_type.is_short_day),
    )
    return leave


def _cache_differs(allotment: Leave, remaining: LeaveQuantity) -> bool:
    if allotment.leave_type.is_short_day:
        return (allotment.remaining_hours, allotment.remaining_minutes) != (remaining.hours, remaining.minutes)
    return allotment.remaining_days is None or to_days(allotment.remaining_days) != remaining.days


def list_leaves(db: Session, current_user: Employee, include_all: bool = False) -> List[Leave]:
    """
    List leave requests and allotments

    Employees see their own records, HR sees their own unless ``include_all``
    is set, and admins always see everyone's. Deduction and penalty
    history is never listed. Every allotment's cached balance is recomputed
    and persisted before returning.
    """
    query = db.query(Leave).options(
        joinedload(Leave.employee),
        joinedload(Leave.leave_type),
        joinedload(Leave.approved_by),
        joinedload(Leave.allotted_by),
    ).filter(Leave.kind.notin_(HISTORY_KINDS))

    if current_user.role == Role.EMPLOYEE or (current_user.role == Role.HR and not include_all):
        query = query.filter(Leave.employee_id == current_user.id)

    leaves = query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()

    allotments = [leave for leave in leaves if leave.is_allotment]
    usage = ledger.approved_usage_by_pair(db, allotments)
    changed = 0
    for allotment in allotments:
        records = usage.get((allotment.employee_id, allotment.leave_type_id), [])
        remaining = ledger.current_remaining(allotment, records)
        if _cache_differs(allotment, remaining):
            ledger.store_remaining(allotment, remaining, allotment.leave_type.is_short_day)
            changed += 1

    if changed:
        ledger.commit_or_conflict(db, "leave balance")
        logger.info("refreshed %s stale allotment balance(s) while listing", changed)
    return leaves


def list_history(
    db: Session,
    current_user: Employee,
    employee_id: Optional[int] = None,
    leave_type_id: Optional[int] = None,
) -> List[Leave]:
    """Deduction and penalty entries of one employee, newest first"""
    target_id = employee_id if employee_id is not None else current_user.id
    if target_id != current_user.id and not current_user.is_leave_manager:
        raise ForbiddenError("You can only view your own leave history")

    query = db.query(Leave).filter(
        Leave.kind.in_(HISTORY_KINDS),
        Leave.employee_id == target_id,
    )
    if leave_type_id is not None:
        query = query.filter(Leave.leave_type_id == leave_type_id)
    return query.order_by(Leave.created_at.desc(), Leave.id.desc()).all()


def employees_on_leave(db: Session, on_date: date) -> List[int]:
    """Distinct employee ids with an approved leave request covering ``on_date``"""
    rows = db.query(Leave.employee_id).filter(
        Leave.kind == LeaveKind.REQUEST,
        Leave.status == LeaveStatus.APPROVED,
        Leave.start_date <= on_date,
        Leave.end_date >= on_date,
    ).distinct().all()
    return sorted(row[0] for row in rows)


def record_penalty(db: Session, data: PenaltyCreateRequest, actor: Employee) -> Leave:
    """
    Record a PENALTY entry docked by the attendance process

    Penalties are history only: they never count against allotments and are
    excluded from leave listings and "on leave" queries.
    """
    employee = db.query(Employee).filter(Employee.id == data.employee_id).first()
    if not employee:
        raise NotFoundError("Employee not found")
    leave_type = get_leave_type_or_404(db, data.leave_type_id)

    if leave_type.is_short_day:
        total = (data.hours or 0) * 60 + (data.minutes or 0)
        if total <= 0:
            raise InvalidInputError("Hours/minutes are required for short day penalties")
        quantity = from_minutes(total)
    else:
        if data.days is None:
            raise InvalidInputError("Days are required for this penalty")
        quantity = LeaveQuantity(days=to_days(data.days))

    now = now_utc()
    penalty = Leave(
        kind=LeaveKind.PENALTY,
        employee_id=employee.id,
        leave_type_id=leave_type.id,
        days=quantity.days,
        hours=quantity.hours if leave_type.is_short_day else None,
        minutes=quantity.minutes if leave_type.is_short_day else None,
        start_date=data.penalty_date,
        end_date=data.penalty_date,
        reason=data.reason,
        status=LeaveStatus.APPROVED,
        allotted_by_id=actor.id,
        allotted_at=now,
        approved_by_id=actor.id,
        approved_at=now,
    )
    db.add(penalty)
    db.flush()
    log_audit(
        db=db,
        actor_id=actor.id,
        action="LEAVE_PENALTY",
        entity_type="leaves",
        entity_id=penalty.id,
        meta={"employee_id": employee.id, "leave_type": leave_type.name, "reason": data.reason},
        commit=False,
    )
    db.commit()
    db.refresh(penalty)
    logger.info("penalty recorded: leave_id=%s employee_id=%s", penalty.id, employee.id)
    return penalty
