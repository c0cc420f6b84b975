"""
Leave type endpoints
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from app.core.deps import get_db, get_current_user, require_admin_or_hr
from app.models.employee import Employee
from app.schemas.leave_type import LeaveTypeCreate, LeaveTypeOut
from app.services.leave_type_service import create_leave_type, list_leave_types

router = APIRouter()


@router.get("", response_model=List[LeaveTypeOut])
async def list_leave_types_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """List active leave types"""
    return list_leave_types(db)


@router.post("", response_model=LeaveTypeOut, status_code=status.HTTP_201_CREATED)
async def create_leave_type_endpoint(
    leave_type_data: LeaveTypeCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_admin_or_hr),
):
    """
    Create a leave type (HR/ADMIN only)

    ``is_short_day`` marks types measured in hours/minutes; when omitted it
    is derived from the name.
    """
    return create_leave_type(db, leave_type_data, current_user.id)
