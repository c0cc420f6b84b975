"""
Database models
"""
from app.models.employee import Employee, Role, LEAVE_MANAGER_ROLES
from app.models.audit_log import AuditLog
from app.models.leave_type import LeaveType
from app.models.leave import (
    Leave,
    LeaveKind,
    LeaveStatus,
    HalfDayType,
    HISTORY_KINDS,
)

__all__ = [
    "Employee",
    "Role",
    "LEAVE_MANAGER_ROLES",
    "AuditLog",
    "LeaveType",
    "Leave",
    "LeaveKind",
    "LeaveStatus",
    "HalfDayType",
    "HISTORY_KINDS",
]
