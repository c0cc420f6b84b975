"""
Employee schemas
"""
from typing import Optional
from pydantic import BaseModel, ConfigDict
from app.models.employee import Role


class EmployeeBrief(BaseModel):
    """Employee details embedded in leave responses"""
    id: int
    emp_code: str
    name: str
    email: Optional[str] = None
    role: Role

    model_config = ConfigDict(from_attributes=True)
