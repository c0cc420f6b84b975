"""
Leave models

One table holds every leave record. ``kind`` tells them apart:

- REQUEST:   a leave application by an employee (pending/approved/rejected)
- ALLOTMENT: the balance ledger head for one (employee, leave type) pair
- DEDUCTION: audit entry written when a request is approved
- PENALTY:   leave docked by the attendance penalty process
"""
from sqlalchemy import (
    Column,
    Integer,
    Date,
    DateTime,
    ForeignKey,
    String,
    Text,
    Numeric,
    Enum as SQLEnum,
    Boolean,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import text
import enum
from app.db.base import Base


class LeaveKind(str, enum.Enum):
    REQUEST = "request"
    ALLOTMENT = "allotment"
    DEDUCTION = "deduction"
    PENALTY = "penalty"


class LeaveStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HalfDayType(str, enum.Enum):
    FIRST_HALF = "first-half"
    SECOND_HALF = "second-half"


# Kinds that never show up in leave listings or "on leave" queries
HISTORY_KINDS = (LeaveKind.DEDUCTION, LeaveKind.PENALTY)


class Leave(Base):
    __tablename__ = "leaves"

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(SQLEnum(LeaveKind, name="leave_kind"), nullable=False, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    leave_type_id = Column(Integer, ForeignKey("leave_types.id"), nullable=False, index=True)

    # Quantity: days for day-granular types, hours/minutes for short-day types
    days = Column(Numeric(8, 4), nullable=False, default=0)
    hours = Column(Integer, nullable=True)
    minutes = Column(Integer, nullable=True)

    # Cached balance on ALLOTMENT rows (recomputed on read and on every transition)
    remaining_days = Column(Numeric(8, 4), nullable=True)
    remaining_hours = Column(Integer, nullable=True)
    remaining_minutes = Column(Integer, nullable=True)
    carry_forward = Column(Boolean, nullable=False, default=False)

    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(LeaveStatus, name="leave_status"), nullable=False, default=LeaveStatus.PENDING)
    half_day_type = Column(SQLEnum(HalfDayType, name="half_day_type"), nullable=True)
    short_day_time = Column(String(11), nullable=True)  # "HH:MM-HH:MM"

    approved_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    allotted_by_id = Column(Integer, ForeignKey("employees.id"), nullable=True)
    allotted_at = Column(DateTime(timezone=True), nullable=True)
    source_leave_id = Column(Integer, ForeignKey("leaves.id", ondelete="SET NULL"), nullable=True, index=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"), nullable=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=text("CURRENT_TIMESTAMP"),
        onupdate=text("CURRENT_TIMESTAMP"),
        nullable=False,
    )

    # Relationships
    employee = relationship("Employee", foreign_keys=[employee_id])
    leave_type = relationship("LeaveType")
    approved_by = relationship("Employee", foreign_keys=[approved_by_id])
    allotted_by = relationship("Employee", foreign_keys=[allotted_by_id])
    source_leave = relationship("Leave", remote_side=[id], back_populates="deductions")
    deductions = relationship("Leave", back_populates="source_leave")

    __table_args__ = (
        Index("ix_leaves_employee_type_kind", "employee_id", "leave_type_id", "kind"),
        CheckConstraint("start_date <= end_date", name="check_leave_start_le_end"),
    )

    # Concurrent writers to the same row fail with StaleDataError instead of
    # silently overwriting each other
    __mapper_args__ = {"version_id_col": version}

    @property
    def total_minutes(self) -> int:
        """Short-day quantity in minutes (absent values count as 0)"""
        return (self.hours or 0) * 60 + (self.minutes or 0)

    @property
    def is_allotment(self) -> bool:
        return self.kind == LeaveKind.ALLOTMENT
