"""
Leave type service - business logic for leave type management
"""
from typing import List

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.errors import ConflictError, NotFoundError
from app.models.leave_type import LeaveType, looks_like_short_day
from app.schemas.leave_type import LeaveTypeCreate
from app.services.audit_service import log_audit


def get_leave_type_or_404(db: Session, leave_type_id: int) -> LeaveType:
    leave_type = db.query(LeaveType).filter(LeaveType.id == leave_type_id).first()
    if not leave_type:
        raise NotFoundError("Leave type not found")
    return leave_type


def list_leave_types(db: Session, active_only: bool = True) -> List[LeaveType]:
    query = db.query(LeaveType)
    if active_only:
        query = query.filter(LeaveType.is_active.is_(True))
    return query.order_by(LeaveType.name).all()


def create_leave_type(db: Session, data: LeaveTypeCreate, actor_id: int) -> LeaveType:
    """
    Create a new leave type

    ``is_short_day`` is taken from the request when given, otherwise derived
    once from the name ("Short Day", "shortday", ...).

    Raises:
        ConflictError: If a leave type with the same name (case-insensitive) exists
    """
    name = data.name.strip()
    existing = db.query(LeaveType).filter(func.lower(LeaveType.name) == name.lower()).first()
    if existing:
        raise ConflictError(f"Leave type with name '{name}' already exists")

    is_short_day = data.is_short_day if data.is_short_day is not None else looks_like_short_day(name)
    leave_type = LeaveType(
        name=name,
        description=data.description,
        max_days=data.max_days,
        is_short_day=is_short_day,
        is_active=True,
    )
    db.add(leave_type)
    db.commit()
    db.refresh(leave_type)

    log_audit(
        db=db,
        actor_id=actor_id,
        action="LEAVE_TYPE_CREATE",
        entity_type="leave_types",
        entity_id=leave_type.id,
        meta={"name": leave_type.name, "is_short_day": leave_type.is_short_day},
    )
    return leave_type
