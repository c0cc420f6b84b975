"""
Leave schemas
"""
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, List
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from app.models.leave import LeaveKind, LeaveStatus, HalfDayType
from app.schemas.employee import EmployeeBrief
from app.schemas.leave_type import LeaveTypeOut
from app.utils.datetime_utils import iso_utc


class LeaveCreateRequest(BaseModel):
    """Schema for applying for leave"""
    leave_type_id: int = Field(..., description="Leave type ID")
    start_date: date = Field(..., description="First day of leave")
    end_date: date = Field(..., description="Last day of leave (inclusive)")
    reason: Optional[str] = Field(None, description="Reason for leave")
    half_day_type: Optional[HalfDayType] = Field(None, description="first-half or second-half for a half-day leave")
    short_day_from_time: Optional[str] = Field(None, description="Short-day start time (HH:MM)")
    short_day_to_time: Optional[str] = Field(None, description="Short-day end time (HH:MM)")
    short_day_time: Optional[str] = Field(
        None,
        description="Short-day window as a single 'HH:MM-HH:MM' string (older clients)"
    )


class LeaveStatusUpdateRequest(BaseModel):
    """Schema for approving or rejecting a leave request"""
    status: LeaveStatus = Field(..., description="approved or rejected")
    rejection_reason: Optional[str] = Field(None, description="Reason shown to the employee on rejection")


class AllotLeaveRequest(BaseModel):
    """Schema for allotting leave to an employee"""
    employee_id: int = Field(..., description="Employee receiving the allotment")
    leave_type_id: int = Field(..., description="Leave type ID")
    days: Optional[Decimal] = Field(None, description="Days to allot (day-granular types)")
    hours: Optional[int] = Field(None, ge=0, description="Hours to allot (short-day types)")
    minutes: Optional[int] = Field(None, ge=0, description="Minutes to allot (short-day types)")
    carry_forward: bool = Field(False, description="Roll over to the next period (informational)")
    reason: Optional[str] = Field(None, description="Note stored on the allotment")


class AllotmentUpdateRequest(BaseModel):
    """Schema for editing an allotment; omitted fields are left unchanged"""
    leave_type_id: Optional[int] = Field(None, description="Move the allotment to another leave type")
    days: Optional[Decimal] = Field(None, description="New total days")
    hours: Optional[int] = Field(None, ge=0, description="New total hours (short-day types)")
    minutes: Optional[int] = Field(None, ge=0, description="New total minutes (short-day types)")
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    carry_forward: Optional[bool] = None


class PenaltyCreateRequest(BaseModel):
    """Schema for recording a penalty leave deduction"""
    employee_id: int = Field(..., description="Penalised employee")
    leave_type_id: int = Field(..., description="Leave type the penalty is booked against")
    penalty_date: date = Field(..., description="Day the penalty relates to")
    days: Optional[Decimal] = Field(None, gt=0, description="Days docked (day-granular types)")
    hours: Optional[int] = Field(None, ge=0, description="Hours docked (short-day types)")
    minutes: Optional[int] = Field(None, ge=0, description="Minutes docked (short-day types)")
    reason: str = Field(..., min_length=1, description="e.g. 'Exceeded max late clock-ins'")


class LeaveOut(BaseModel):
    """Schema for leave output (requests, allotments and history entries)"""
    id: int
    kind: LeaveKind
    employee_id: int
    employee: Optional[EmployeeBrief] = None
    leave_type_id: int
    leave_type: Optional[LeaveTypeOut] = None
    days: float
    hours: Optional[int] = None
    minutes: Optional[int] = None
    remaining_days: Optional[float] = None
    remaining_hours: Optional[int] = None
    remaining_minutes: Optional[int] = None
    carry_forward: bool
    start_date: date
    end_date: date
    reason: Optional[str]
    status: LeaveStatus
    half_day_type: Optional[HalfDayType] = None
    short_day_time: Optional[str] = None
    approved_by_id: Optional[int] = None
    approved_by: Optional[EmployeeBrief] = None
    approved_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    allotted_by_id: Optional[int] = None
    allotted_by: Optional[EmployeeBrief] = None
    allotted_at: Optional[datetime] = None
    source_leave_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("approved_at", "allotted_at", "created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_utc(dt)


class LeaveListResponse(BaseModel):
    """Leave list with total count"""
    items: List[LeaveOut]
    total: int


class RecalculateBalancesResponse(BaseModel):
    message: str
    updated: int


class OnLeaveResponse(BaseModel):
    """Employees with an approved leave covering ``on_date``"""
    on_date: date
    employee_ids: List[int]
    count: int
