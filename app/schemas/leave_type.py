"""
Leave type schemas
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field, field_serializer, ConfigDict
from app.utils.datetime_utils import iso_utc


class LeaveTypeCreate(BaseModel):
    """Schema for creating a leave type"""
    name: str = Field(..., min_length=1, max_length=100, description="Leave type name (unique)")
    description: Optional[str] = Field(None, description="Leave type description")
    max_days: Optional[float] = Field(None, ge=0, description="Informational upper bound in days")
    is_short_day: Optional[bool] = Field(
        None,
        description="Measured in hours/minutes. Derived from the name when omitted"
    )


class LeaveTypeOut(BaseModel):
    """Schema for leave type output"""
    id: int
    name: str
    description: Optional[str]
    max_days: Optional[float]
    is_short_day: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("created_at", "updated_at", when_used="always")
    @classmethod
    def _ser_datetime(cls, dt: Optional[datetime]) -> Optional[str]:
        return iso_utc(dt)
