"""
Leave ledger access

Database-bound helpers around the balance calculator: locating the allotment
of an (employee, leave type) pair, loading its approved usage and writing the
cached remaining balance back onto the allotment row.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.exc import StaleDataError

from app.core.errors import ConflictError, NotFoundError
from app.models.leave import Leave, LeaveKind, LeaveStatus
from app.services.leave_balance import LeaveQuantity, calculate_remaining

logger = logging.getLogger(__name__)

Pair = Tuple[int, int]


def get_leave_or_404(db: Session, leave_id: int) -> Leave:
    leave = db.query(Leave).filter(Leave.id == leave_id).first()
    if not leave:
        raise NotFoundError("Leave not found")
    return leave


def get_allotment(
    db: Session,
    employee_id: int,
    leave_type_id: int,
    exclude_id: Optional[int] = None,
) -> Optional[Leave]:
    """The allotment for (employee, leave type), if any"""
    query = db.query(Leave).filter(
        Leave.kind == LeaveKind.ALLOTMENT,
        Leave.employee_id == employee_id,
        Leave.leave_type_id == leave_type_id,
    )
    if exclude_id is not None:
        query = query.filter(Leave.id != exclude_id)
    return query.first()


def approved_usage(db: Session, employee_id: int, leave_type_id: int) -> List[Leave]:
    """Approved leave requests of one (employee, leave type) pair"""
    return db.query(Leave).filter(
        Leave.kind == LeaveKind.REQUEST,
        Leave.status == LeaveStatus.APPROVED,
        Leave.employee_id == employee_id,
        Leave.leave_type_id == leave_type_id,
    ).all()


def approved_usage_by_pair(db: Session, allotments: Iterable[Leave]) -> Dict[Pair, List[Leave]]:
    """Approved requests for the pairs of ``allotments``, loaded in one query"""
    employee_ids = {a.employee_id for a in allotments}
    usage: Dict[Pair, List[Leave]] = defaultdict(list)
    if not employee_ids:
        return usage
    rows = db.query(Leave).filter(
        Leave.kind == LeaveKind.REQUEST,
        Leave.status == LeaveStatus.APPROVED,
        Leave.employee_id.in_(employee_ids),
    ).all()
    for row in rows:
        usage[(row.employee_id, row.leave_type_id)].append(row)
    return usage


def store_remaining(allotment: Leave, remaining: LeaveQuantity, is_short_day: bool) -> None:
    """
    Write ``remaining`` onto the allotment cache.

    The allotment is always marked dirty so its version counter is checked
    and bumped on flush, even when the value happens to be unchanged.
    """
    if is_short_day:
        allotment.remaining_days = None
        allotment.remaining_hours = remaining.hours
        allotment.remaining_minutes = remaining.minutes
        flag_modified(allotment, "remaining_hours")
    else:
        allotment.remaining_days = remaining.days
        allotment.remaining_hours = None
        allotment.remaining_minutes = None
        flag_modified(allotment, "remaining_days")


def current_remaining(
    allotment: Leave,
    records: Iterable[Leave],
    exclude_id: Optional[int] = None,
) -> LeaveQuantity:
    return calculate_remaining(allotment, records, allotment.leave_type.is_short_day, exclude_id)


def refresh_allotment(
    db: Session,
    allotment: Leave,
    records: Optional[Iterable[Leave]] = None,
    exclude_id: Optional[int] = None,
) -> LeaveQuantity:
    """Recompute the allotment's remaining balance from the ledger and cache it"""
    if records is None:
        records = approved_usage(db, allotment.employee_id, allotment.leave_type_id)
    remaining = current_remaining(allotment, records, exclude_id)
    store_remaining(allotment, remaining, allotment.leave_type.is_short_day)
    return remaining


def commit_or_conflict(db: Session, what: str) -> None:
    """
    Commit the session; a concurrent write to one of the touched rows
    rolls everything back and surfaces as a Conflict.
    """
    try:
        db.commit()
    except StaleDataError:
        db.rollback()
        logger.warning("Concurrent update detected while saving %s", what)
        raise ConflictError(
            f"The {what} was modified by another request. Please reload and try again."
        )
