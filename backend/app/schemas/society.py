from pydantic import BaseModel, ConfigDict
from typing import Optional
from datetime import datetime

from app.models.society import SocietyCategory
from app.schemas.auth import UserResponse
from app.schemas.membership import MembershipResponse


class SocietyCreate(BaseModel):
    name: str
    description: Optional[str] = None
    category: SocietyCategory = SocietyCategory.TECH
    college_id: Optional[str] = None


class SocietyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: Optional[str] = None
    category: SocietyCategory
    college_id: Optional[str] = None
    faculty_coordinator_id: Optional[str] = None
    president_name: Optional[str] = None
    is_active: bool
    created_at: datetime


class DepartmentCreate(BaseModel):
    name: str
    description: Optional[str] = None


class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    society_id: str
    name: str
    description: Optional[str] = None
    created_at: datetime


class DepartmentSummary(BaseModel):
    """Department with its active headcount and current head"""
    department: DepartmentResponse
    member_count: int = 0
    head: Optional[UserResponse] = None


class MemberEntry(BaseModel):
    membership: MembershipResponse
    user: Optional[UserResponse] = None
